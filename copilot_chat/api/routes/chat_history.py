from __future__ import annotations

import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request, Response, status

from copilot_chat.core.deps import (
    get_auth_info,
    get_message_repository,
    get_participant_repository,
    get_services,
    get_session_repository,
    get_source_repository,
    require_chat_participant,
)
from copilot_chat.core.security import AuthInfo
from copilot_chat.models.storage import (
    ChatMessage,
    ChatParticipant,
    ChatSession,
    MemorySource,
    empty_token_usages,
)
from copilot_chat.repositories import (
    ChatMemorySourceRepository,
    ChatMessageRepository,
    ChatParticipantRepository,
    ChatSessionRepository,
)
from copilot_chat.schemas.chat import CreateChatParameters, CreateChatResponse, EditChatParameters
from copilot_chat.services.container import ChatServices

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chatSession", tags=["Chat History"], dependencies=[Depends(get_auth_info)])


# PUBLIC_INTERFACE
@router.post(
    "/create",
    response_model=CreateChatResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create chat session",
    description="Create a new chat session, its initial bot message, and add the caller as participant.",
)
async def create_chat_session(
    request: Request,
    response: Response,
    payload: CreateChatParameters,
    auth: AuthInfo = Depends(get_auth_info),
    services: ChatServices = Depends(get_services),
) -> CreateChatResponse:
    if payload.title is None:
        raise HTTPException(status_code=400, detail="Chat session parameters cannot be null.")

    repos = services.repositories
    new_chat = ChatSession(title=payload.title, system_description=services.prompts.system_description)
    await repos.sessions.create(new_chat)

    # The initial bot message needs no prompt.
    chat_message = ChatMessage.create_bot_response_message(
        new_chat.id,
        services.prompts.initial_bot_message,
        "",
        empty_token_usages(),
    )
    await repos.messages.create(chat_message)

    await repos.participants.create(ChatParticipant(user_id=auth.user_id, chat_id=new_chat.id))

    logger.debug("Created chat session with id %s.", new_chat.id)
    response.headers["Location"] = str(request.url_for("get_chat_session_by_id", chatId=new_chat.id))
    return CreateChatResponse(chat_session=new_chat, initial_bot_message=chat_message)


# PUBLIC_INTERFACE
@router.get(
    "/getChat/{chatId}",
    response_model=ChatSession,
    summary="Get chat session",
    dependencies=[Depends(require_chat_participant)],
)
async def get_chat_session_by_id(
    chat_id: UUID = Path(..., alias="chatId"),
    sessions: ChatSessionRepository = Depends(get_session_repository),
) -> ChatSession:
    chat = await sessions.try_find_by_id(str(chat_id))
    if chat is None:
        raise HTTPException(status_code=404, detail=f"No chat session found for chat id '{chat_id}'.")
    return chat


# PUBLIC_INTERFACE
@router.get(
    "/getAllChats/{userId}",
    response_model=List[ChatSession],
    summary="List chat sessions",
    description="List the chat sessions of the signed-in user. Returns an empty list if there are none.",
)
async def get_all_chat_sessions(
    user_id: str = Path(..., alias="userId"),
    auth: AuthInfo = Depends(get_auth_info),
    sessions: ChatSessionRepository = Depends(get_session_repository),
    participants: ChatParticipantRepository = Depends(get_participant_repository),
) -> List[ChatSession]:
    # The path user id is informational; only the caller's own chats are listed.
    chats: List[ChatSession] = []
    for participant in await participants.find_by_user_id(auth.user_id):
        chat = await sessions.try_find_by_id(participant.chat_id)
        if chat is None:
            logger.debug("Failed to find chat session with id %s", participant.chat_id)
            continue
        chats.append(chat)
    return chats


# PUBLIC_INTERFACE
@router.get(
    "/getChatMessages/{chatId}",
    response_model=List[ChatMessage],
    summary="List chat messages",
    description=(
        "List messages of a chat, most recent first. A negative startIdx counts as 0; "
        "a negative count returns all messages from startIdx."
    ),
    dependencies=[Depends(require_chat_participant)],
)
async def get_chat_messages(
    chat_id: UUID = Path(..., alias="chatId"),
    start_idx: int = Query(0, alias="startIdx", description="Index of the first message to return"),
    count: int = Query(-1, description="Number of messages to return; negative for all remaining"),
    messages: ChatMessageRepository = Depends(get_message_repository),
) -> List[ChatMessage]:
    chat_messages = await messages.find_by_chat_id(str(chat_id))
    if not chat_messages:
        raise HTTPException(status_code=404, detail=f"No messages found for chat id '{chat_id}'.")

    chat_messages.sort(key=lambda m: m.timestamp, reverse=True)
    page = chat_messages[max(start_idx, 0):]
    if count >= 0:
        page = page[:count]
    return page


# PUBLIC_INTERFACE
@router.post(
    "/edit",
    response_model=ChatSession,
    summary="Edit chat session",
    description="Edit title, system description or memory balance and notify connected clients of the chat.",
)
async def edit_chat_session(
    payload: EditChatParameters,
    auth: AuthInfo = Depends(get_auth_info),
    services: ChatServices = Depends(get_services),
) -> ChatSession:
    chat_id = payload.id
    if chat_id is None:
        raise HTTPException(status_code=400, detail="Chat id must be specified.")

    repos = services.repositories
    if not await repos.participants.is_user_in_chat(auth.user_id, chat_id):
        raise HTTPException(status_code=403, detail="User does not have access to the specified chat.")

    chat = await repos.sessions.try_find_by_id(chat_id)
    if chat is None:
        raise HTTPException(status_code=404, detail=f"No chat session found for chat id '{chat_id}'.")

    if payload.title is not None:
        chat.title = payload.title
    if payload.system_description is not None:
        chat.system_description = payload.system_description
    if payload.memory_balance is not None:
        chat.memory_balance = payload.memory_balance
    await repos.sessions.upsert(chat)
    await services.relay.chat_edited(chat)
    return chat


# PUBLIC_INTERFACE
@router.get(
    "/{chatId}/sources",
    response_model=List[MemorySource],
    summary="List imported sources",
    description="List documents and links imported into the chat, including global ones.",
    dependencies=[Depends(require_chat_participant)],
)
async def get_sources(
    chat_id: UUID = Path(..., alias="chatId"),
    sessions: ChatSessionRepository = Depends(get_session_repository),
    sources: ChatMemorySourceRepository = Depends(get_source_repository),
) -> List[MemorySource]:
    logger.info("Get imported sources of chat session %s", chat_id)
    if await sessions.try_find_by_id(str(chat_id)) is None:
        raise HTTPException(status_code=404, detail=f"No chat session found for chat id '{chat_id}'.")
    return await sources.find_by_chat_id(str(chat_id))
