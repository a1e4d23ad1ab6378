# msgboard/routes/messages.py
"""
Message board routes.

All business logic is delegated to MessageService.

Endpoints:
    GET /messages - Snapshot, or long-poll for the next message on an empty board
    POST /messages - Post a new message
    POST /like - Increment a message's like counter
    POST /dislike - Increment a message's dislike counter
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Request, status

from ..core.exceptions import DomainException
from ..dependencies import client_handle, get_message_service
from ..models.message import ReactionKind
from ..schemas.messages import (
    MessageResponse,
    ReactionRequest,
    SubmitMessageRequest,
    SubmitMessageResponse,
)
from ..services.message_service import MessageService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["messages"])


async def _wait_for_disconnect(request: Request) -> None:
    """Return once the client closes the connection."""
    while True:
        message = await request.receive()
        if message["type"] == "http.disconnect":
            return


@router.get(
    "/messages",
    response_model=List[MessageResponse],
    responses={200: {"description": "Full snapshot, new messages, or [] on timeout"}},
)
async def get_messages(
    request: Request,
    service: MessageService = Depends(get_message_service),
) -> List[MessageResponse]:
    """
    Fetch messages.

    If the board already has messages they are all returned immediately.
    On an empty board in long-poll mode the request is held open until the
    next message arrives (returned as a one-element list) or the timeout
    elapses (empty list).
    """
    messages = await service.wait_for_messages(
        handle=client_handle(request),
        disconnected=lambda: _wait_for_disconnect(request),
    )
    return [MessageResponse.from_message(m) for m in messages]


@router.post(
    "/messages",
    response_model=SubmitMessageResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        201: {"description": "Message accepted"},
        400: {"description": "Message is blank or too long"},
    },
)
async def post_message(
    payload: SubmitMessageRequest,
    service: MessageService = Depends(get_message_service),
) -> SubmitMessageResponse:
    try:
        service.submit_message(payload.message)
    except DomainException as e:
        logger.info(f"[INGEST] Message rejected: {e.message}")
        raise e.to_http_exception() from e
    return SubmitMessageResponse(success=True)


def _react(service: MessageService, payload: ReactionRequest, kind: ReactionKind) -> MessageResponse:
    try:
        message_id = service.resolve_message_id(payload.identifier)
        message = service.submit_reaction(message_id, kind)
    except DomainException as e:
        logger.info(
            "[INGEST] Reaction rejected",
            extra={"identifier": payload.identifier, "kind": kind.value, "error": e.message},
        )
        raise e.to_http_exception() from e
    return MessageResponse.from_message(message)


@router.post(
    "/like",
    response_model=MessageResponse,
    responses={404: {"description": "Message not found"}},
)
async def like_message(
    payload: ReactionRequest,
    service: MessageService = Depends(get_message_service),
) -> MessageResponse:
    return _react(service, payload, ReactionKind.LIKE)


@router.post(
    "/dislike",
    response_model=MessageResponse,
    responses={404: {"description": "Message not found"}},
)
async def dislike_message(
    payload: ReactionRequest,
    service: MessageService = Depends(get_message_service),
) -> MessageResponse:
    return _react(service, payload, ReactionKind.DISLIKE)
