from __future__ import annotations

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from copilot_chat.core.errors import AuthenticationError
from copilot_chat.services.container import ChatServices
from copilot_chat.services.realtime import RECEIVE_MESSAGE, RECEIVE_USER_TYPING_STATE

logger = logging.getLogger(__name__)

router = APIRouter()


# PUBLIC_INTERFACE
@router.websocket("/messageRelayHub")
async def message_relay_hub(websocket: WebSocket):
    """
    WebSocket endpoint relaying chat activity between clients of the same chat.

    Security:
      - Query param 'access_token' is validated by the configured authenticator.
    Messages (JSON envelopes {type, payload}):
      - Client -> Server:
          AddClientToGroup     {chatId}
          SendMessage          {chatId, message}
          SendUserTypingState  {chatId, userId, isTyping}
          ping
      - Server -> Client:
          ChatEdited, ReceiveMessage, ReceiveUserTypingState envelopes; 'pong'.
    """
    services: ChatServices = websocket.app.state.services
    await websocket.accept()
    try:
        auth = await services.authenticator.authenticate(websocket.query_params.get("access_token"))
    except AuthenticationError:
        await websocket.close(code=4401)
        return

    relay = services.relay
    try:
        while True:
            data = await websocket.receive_json()
            if not isinstance(data, dict):
                logger.debug("Ignoring non-object relay frame from user=%s", auth.user_id)
                continue
            msg_type = data.get("type")
            if msg_type == "ping":
                await websocket.send_text("pong")
                continue

            payload = data.get("payload")
            chat_id = payload.get("chatId") if isinstance(payload, dict) else None
            if not isinstance(msg_type, str) or not isinstance(chat_id, str):
                # ignore malformed
                continue

            if msg_type == "AddClientToGroup":
                await relay.add_to_group(chat_id, websocket)
            elif msg_type == "SendMessage":
                await relay.broadcast(chat_id, RECEIVE_MESSAGE, payload, exclude=websocket)
            elif msg_type == "SendUserTypingState":
                await relay.broadcast(chat_id, RECEIVE_USER_TYPING_STATE, payload, exclude=websocket)
            else:
                logger.debug("Ignoring relay message type=%s from user=%s", msg_type, auth.user_id)
    except WebSocketDisconnect:
        await relay.disconnect(websocket)
    except Exception:
        logger.exception("Error on message relay connection")
        await relay.disconnect(websocket)
        await websocket.close()
