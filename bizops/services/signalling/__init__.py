"""
Signalling Hub
WebRTC room registry, message router and liveness reaper
"""
from .hub import Connection, Room, SignallingHub
from .recorder import DatabaseSignalRecorder

__all__ = ["Connection", "Room", "SignallingHub", "DatabaseSignalRecorder"]
