from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional, Set

from starlette.websockets import WebSocket, WebSocketState

from copilot_chat.models.storage import ChatSession
from copilot_chat.schemas.realtime import RelayEnvelope

logger = logging.getLogger(__name__)

CHAT_EDITED = "ChatEdited"
RECEIVE_MESSAGE = "ReceiveMessage"
RECEIVE_USER_TYPING_STATE = "ReceiveUserTypingState"


class MessageRelay:
    """
    In-process pub-sub of WebSocket clients grouped by chat id.

    Every client viewing a chat joins the group named after the chat id and
    receives edits, relayed messages and typing notifications for that chat.
    """

    def __init__(self) -> None:
        self._groups: Dict[str, Set[WebSocket]] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._global_lock = asyncio.Lock()

    def _group_lock(self, group: str) -> asyncio.Lock:
        if group not in self._locks:
            self._locks[group] = asyncio.Lock()
        return self._locks[group]

    async def _ensure_group(self, group: str) -> None:
        async with self._global_lock:
            if group not in self._groups:
                self._groups[group] = set()

    def group_size(self, group: str) -> int:
        return len(self._groups.get(group, ()))

    # PUBLIC_INTERFACE
    async def add_to_group(self, group: str, websocket: WebSocket) -> None:
        """Add an accepted websocket to a chat group."""
        await self._ensure_group(group)
        async with self._group_lock(group):
            self._groups[group].add(websocket)
            logger.info("WebSocket joined chat=%s; subscribers=%d", group, len(self._groups[group]))

    # PUBLIC_INTERFACE
    async def remove_from_group(self, group: str, websocket: WebSocket) -> None:
        """Remove websocket from a chat group."""
        if group not in self._groups:
            return
        async with self._group_lock(group):
            self._groups[group].discard(websocket)
            logger.info("WebSocket left chat=%s; subscribers=%d", group, len(self._groups[group]))

    # PUBLIC_INTERFACE
    async def disconnect(self, websocket: WebSocket) -> None:
        """Remove websocket from every group it joined."""
        for group in [g for g, members in self._groups.items() if websocket in members]:
            await self.remove_from_group(group, websocket)

    # PUBLIC_INTERFACE
    async def broadcast(
        self,
        group: str,
        message_type: str,
        payload: Dict[str, Any],
        exclude: Optional[WebSocket] = None,
    ) -> None:
        """
        Send an envelope to all subscribers of the group except `exclude`.
        """
        await self._ensure_group(group)
        envelope = RelayEnvelope(type=message_type, payload=payload).model_dump(mode="json")
        async with self._group_lock(group):
            to_drop: list[WebSocket] = []
            for ws in list(self._groups[group]):
                if exclude is not None and ws is exclude:
                    continue
                try:
                    if ws.application_state == WebSocketState.DISCONNECTED or ws.client_state == WebSocketState.DISCONNECTED:
                        to_drop.append(ws)
                        continue
                    await ws.send_json(envelope)
                except Exception:
                    logger.exception("Failed to send message to websocket; scheduling drop")
                    to_drop.append(ws)
            for ws in to_drop:
                self._groups[group].discard(ws)

    # PUBLIC_INTERFACE
    async def chat_edited(self, chat: ChatSession) -> None:
        """Notify every client of the chat that its session was edited."""
        await self.broadcast(chat.id, CHAT_EDITED, chat.model_dump(mode="json", by_alias=True))
