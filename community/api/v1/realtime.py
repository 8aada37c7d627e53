import asyncio
import logging
from uuid import UUID

from fastapi import APIRouter, Query, WebSocket, status
from starlette.concurrency import run_in_threadpool
from starlette.websockets import WebSocketState

from community.api.deps import authenticate_token
from community.core.errors import SubscriptionError
from community.db.session import SessionLocal
from community.infra.realtime import RealtimeHub, Subscription
from community.models.profile import Profile

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ws", tags=["realtime"])


@router.websocket("/notifications")
async def notifications_ws(websocket: WebSocket, token: str | None = Query(default=None)):
    profile = await run_in_threadpool(_authenticate, token)
    if profile is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    subscription = await RealtimeHub().subscribe_notifications(profile.id)
    await _bridge(websocket, subscription, event_type="notification.insert")


@router.websocket("/posts/{post_id}/comments")
async def comments_ws(websocket: WebSocket, post_id: UUID):
    await websocket.accept()
    subscription = await RealtimeHub().subscribe_comments(post_id)
    await _bridge(websocket, subscription, event_type="comment.insert")


def _authenticate(token: str | None) -> Profile | None:
    db = SessionLocal()
    try:
        return authenticate_token(token, db)
    finally:
        db.close()


async def _bridge(websocket: WebSocket, subscription: Subscription, *, event_type: str) -> None:
    """Forward subscription events until either side goes away."""

    async def sender() -> None:
        try:
            async for event in subscription:
                await websocket.send_json({"type": event_type, "data": event.model_dump(mode="json")})
        except SubscriptionError as exc:
            await websocket.send_json({"type": "error", "code": exc.code, "detail": exc.message})

    async def receiver() -> None:
        # inbound frames are ignored, this only notices the disconnect
        while True:
            await websocket.receive_text()

    sender_task = asyncio.create_task(sender())
    receiver_task = asyncio.create_task(receiver())
    try:
        await asyncio.wait({sender_task, receiver_task}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        subscription.close()
        for task in (sender_task, receiver_task):
            if not task.done():
                task.cancel()
        results = await asyncio.gather(sender_task, receiver_task, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                logger.debug("realtime socket closed", extra={"channel": subscription.channel, "error": str(result)})
        if websocket.client_state == WebSocketState.CONNECTED:
            await websocket.close()
