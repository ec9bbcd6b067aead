"""
API Dependencies
Common dependencies for API endpoints
"""
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, Query
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from starlette.requests import HTTPConnection

from bizops.core.database import get_db  # noqa: F401  re-exported for routers and overrides
from bizops.core.exceptions import UnauthorizedError
from bizops.core.security import verify_token
from bizops.services.signalling import SignallingHub

# Bearer tokens are optional; header context is the fallback
security = HTTPBearer(auto_error=False)


@dataclass
class RequestContext:
    organization_id: str
    user_id: Optional[str] = None


def get_request_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    x_organization_id: Optional[str] = Header(None),
    x_user_id: Optional[str] = Header(None),
) -> RequestContext:
    """
    Resolve the organization (and acting user) for the request.

    A bearer token wins over the X-Organization-ID / X-User-ID headers.
    """
    if credentials is not None:
        claims = verify_token(credentials.credentials)
        return RequestContext(organization_id=claims["org_id"], user_id=claims["sub"])

    if not x_organization_id:
        raise UnauthorizedError("Organization not found")
    return RequestContext(organization_id=x_organization_id, user_id=x_user_id)


def get_pagination_params(
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(50, ge=1, le=500, description="Items per page"),
) -> dict:
    return {"page": page, "limit": limit}


def get_signalling_hub(connection: HTTPConnection) -> SignallingHub:
    return connection.app.state.signalling_hub
