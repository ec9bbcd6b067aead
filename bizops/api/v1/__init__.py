"""API version 1 endpoints"""
