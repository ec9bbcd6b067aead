"""
WebRTC signalling WebSocket endpoint
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status

from bizops.api import deps
from bizops.core.exceptions import UnauthorizedError
from bizops.core.logging import get_logger
from bizops.core.security import verify_token
from bizops.services.signalling import SignallingHub

logger = get_logger("signalling")

router = APIRouter()


@router.websocket("/ws/webrtc")
async def webrtc_signalling(
    websocket: WebSocket,
    token: Optional[str] = Query(None),
    hub: SignallingHub = Depends(deps.get_signalling_hub),
):
    """
    Upgrade to the signalling hub.

    The ``token`` query parameter must be a valid access token; its claims
    give the peer's user and organization. A bad token is refused with
    policy-violation close code 1008 before the upgrade completes.
    """
    try:
        claims = verify_token(token or "")
    except UnauthorizedError as e:
        logger.warning(f"Signalling connection refused: {e.message}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    conn = await hub.register(websocket, claims["sub"], claims["org_id"])
    try:
        while True:
            raw = await websocket.receive_text()
            await hub.handle_raw(conn, raw)
    except WebSocketDisconnect:
        logger.debug(f"Connection {conn.id} disconnected by peer")
    finally:
        await hub.unregister(conn)
