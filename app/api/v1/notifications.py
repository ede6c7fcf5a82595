import asyncio
import json
from typing import AsyncIterator, Awaitable, Callable, List, Optional

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, resolve_user
from core.logging import logger
from db.database import get_db
from db.models import User
from schemas.social import NotificationOut
from services import notification_service
from services.notification_service import hub

router = APIRouter(prefix="/notifications", tags=["notifications"])

KEEPALIVE_SECONDS = 15.0


@router.get("", response_model=List[NotificationOut])
async def list_notifications(
    user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)
):
    return await notification_service.get_notifications(db, user.id)


@router.post("/{notification_id}/read", response_model=NotificationOut)
async def mark_read(
    notification_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await notification_service.mark_notification_as_read(db, notification_id, user.id)


async def event_stream(
    user_id: str,
    queue: asyncio.Queue,
    is_disconnected: Callable[[], Awaitable[bool]],
    keepalive: float = KEEPALIVE_SECONDS,
) -> AsyncIterator[str]:
    """Relay hub events for one subscriber as server-sent events."""
    try:
        while not await is_disconnected():
            try:
                event = await asyncio.wait_for(queue.get(), timeout=keepalive)
            except asyncio.TimeoutError:
                yield ": keep-alive\n\n"
                continue
            yield f"data: {json.dumps(event, default=str)}\n\n"
    finally:
        hub.unsubscribe(user_id, queue)


@router.get("/stream")
async def stream_notifications(
    request: Request,
    token: Optional[str] = None,
    authorization: Optional[str] = Header(default=None),
    db: AsyncSession = Depends(get_db),
):
    # EventSource can't set headers, so the token may come in the query string.
    user = await resolve_user(db, authorization or (f"Bearer {token}" if token else None))
    user_id = user.id
    await db.close()

    logger.info(f"Opening notification stream for {user_id}")
    queue = hub.subscribe(user_id)
    return StreamingResponse(
        event_stream(user_id, queue, request.is_disconnected),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
