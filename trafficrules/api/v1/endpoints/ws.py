"""
WebSocket Endpoint

- WS  /ws/notifications?token=<access token>

Streams new notifications to the connected user. Clients only listen;
any text they send is ignored apart from "ping", answered with "pong".
"""

import logging

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

from trafficrules.api.deps import get_current_user_ws
from trafficrules.services.websocket_manager import get_connection_manager

logger = logging.getLogger(__name__)

router = APIRouter(tags=["WebSocket"])


@router.websocket("/ws/notifications")
async def notifications_socket(
    websocket: WebSocket,
    token: str = Query(...),
):
    user = await get_current_user_ws(token)
    if user is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    manager = get_connection_manager()
    await manager.connect(websocket, str(user.id))
    try:
        while True:
            text = await websocket.receive_text()
            if text == "ping":
                await websocket.send_text("pong")
    except WebSocketDisconnect:
        pass
    finally:
        manager.disconnect(websocket)
