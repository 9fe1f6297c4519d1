from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from app.auth.api.dependencies import get_current_user
from app.auth.api.dto import BaseResponse
from app.chat.api.dto import SendMessageRequest, SendMessageResponse
from app.chat.api.handler import ChatHandler
from app.core.client_info import get_client_info
from app.core.logger import get_logger

chat_router = APIRouter(prefix="/chat", tags=["Chat"])
logger = get_logger("ChatRouter")


def get_chat_handler(request: Request) -> ChatHandler:
    """Dependency to build the chat handler around the service on app.state."""
    chat_service = getattr(request.app.state, "chat_service", None)
    if chat_service is None:
        raise HTTPException(status_code=503, detail="Chat service not available")
    return ChatHandler(chat_service, logger)


@chat_router.post("/message", response_model=SendMessageResponse)
async def send_message(
    body: SendMessageRequest,
    request: Request,
    current_user: dict = Depends(get_current_user),
    handler: ChatHandler = Depends(get_chat_handler),
):
    """Send a message and get the assistant's reply (falls back to a canned reply when no provider answers)."""
    client_ip, user_agent = get_client_info(request)
    return await handler.send_message(current_user["user_id"], body, client_ip, user_agent)


@chat_router.get("/history", response_model=BaseResponse)
async def get_history(
    current_user: dict = Depends(get_current_user),
    handler: ChatHandler = Depends(get_chat_handler),
    session_id: Optional[str] = Query(default=None, description="Restrict to one session"),
):
    """The caller's exchanges, newest first."""
    return await handler.history(current_user["user_id"], session_id)


@chat_router.get("/sessions", response_model=BaseResponse)
async def get_sessions(
    current_user: dict = Depends(get_current_user),
    handler: ChatHandler = Depends(get_chat_handler),
):
    return await handler.sessions(current_user["user_id"])


@chat_router.delete("/history/{exchange_id}", response_model=BaseResponse)
async def delete_exchange(
    exchange_id: int,
    request: Request,
    current_user: dict = Depends(get_current_user),
    handler: ChatHandler = Depends(get_chat_handler),
):
    client_ip, user_agent = get_client_info(request)
    return await handler.delete_history(current_user["user_id"], exchange_id, None, client_ip, user_agent)


@chat_router.delete("/history", response_model=BaseResponse)
async def delete_history(
    request: Request,
    current_user: dict = Depends(get_current_user),
    handler: ChatHandler = Depends(get_chat_handler),
    session_id: Optional[str] = Query(default=None, description="Delete one session; omit to delete everything"),
):
    client_ip, user_agent = get_client_info(request)
    return await handler.delete_history(current_user["user_id"], None, session_id, client_ip, user_agent)
