from __future__ import annotations

import logging
from uuid import UUID

from fastapi import Depends, HTTPException, Path, Request, status

from copilot_chat.core.errors import AuthenticationError
from copilot_chat.core.logging import user_id_var
from copilot_chat.core.security import AuthInfo
from copilot_chat.repositories import (
    ChatMemorySourceRepository,
    ChatMessageRepository,
    ChatParticipantRepository,
    ChatSessionRepository,
)
from copilot_chat.services.container import ChatServices

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
def get_services(request: Request) -> ChatServices:
    """Return the services container built by create_app."""
    return request.app.state.services


# PUBLIC_INTERFACE
def get_session_repository(services: ChatServices = Depends(get_services)) -> ChatSessionRepository:
    return services.repositories.sessions


# PUBLIC_INTERFACE
def get_message_repository(services: ChatServices = Depends(get_services)) -> ChatMessageRepository:
    return services.repositories.messages


# PUBLIC_INTERFACE
def get_participant_repository(services: ChatServices = Depends(get_services)) -> ChatParticipantRepository:
    return services.repositories.participants


# PUBLIC_INTERFACE
def get_source_repository(services: ChatServices = Depends(get_services)) -> ChatMemorySourceRepository:
    return services.repositories.sources


def _bearer_token(request: Request) -> str | None:
    header = request.headers.get("Authorization")
    if not header:
        return None
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() != "bearer" or not credentials:
        return None
    return credentials.strip()


# PUBLIC_INTERFACE
async def get_auth_info(
    request: Request,
    services: ChatServices = Depends(get_services),
) -> AuthInfo:
    """
    Resolve the caller's identity with the configured authenticator.

    Raises:
        HTTPException: 401 Unauthorized when the token is missing or invalid.
    """
    try:
        auth = await services.authenticator.authenticate(_bearer_token(request))
    except AuthenticationError as exc:
        logger.info("Authentication failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
            headers={"WWW-Authenticate": "Bearer"},
        )
    user_id_var.set(auth.user_id)
    return auth


# PUBLIC_INTERFACE
async def require_chat_participant(
    chat_id: UUID = Path(..., alias="chatId"),
    auth: AuthInfo = Depends(get_auth_info),
    sessions: ChatSessionRepository = Depends(get_session_repository),
    participants: ChatParticipantRepository = Depends(get_participant_repository),
) -> None:
    """
    Require the caller to be a participant of the chat named in the route.

    A chat that does not exist passes, so the handler can answer 404.
    """
    chat_key = str(chat_id)
    if await sessions.try_find_by_id(chat_key) is None:
        return
    if not await participants.is_user_in_chat(auth.user_id, chat_key):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User does not have access to the specified chat.",
        )
