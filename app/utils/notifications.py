# app/utils/notifications.py
import asyncio
import logging
import random
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from fastapi import WebSocket
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import settings
from app.core.database import AsyncSessionLocal
from app.crud.notification import create_notification
from app.schemas.notification import NotificationCreate

logger = logging.getLogger(__name__)

# Category tags carried by every savings alert
GOAL_ACHIEVED_TAG = "savings-goal"
GOAL_PROGRESS_TAG = "savings-progress"

# Store active WebSocket connections by user_id
active_connections: Dict[uuid.UUID, List[WebSocket]] = {}

Chooser = Callable[[Sequence[Tuple[str, str, str]]], Tuple[str, str, str]]

# (emoji, title, body) with {name}, {amount} placeholders
ACHIEVED_MESSAGES = [
    ("🎉", "BOOM! Goal Crushed!", "{name} complete! You absolute legend! {amount} secured! 💪🏆"),
    ("🚀", "To The Moon!", "{name} achieved! {amount} saved! You're basically a finance ninja now! 🥷✨"),
    ("🎊", "Victory Dance Time!", "{name} unlocked! {amount}! Your piggy bank is doing backflips! 🐷💃"),
    ("👑", "Savings Royalty!", "{name} conquered! {amount} saved! Crown yourself! 👑💎"),
    ("🔥", "On Fire!", "{name} demolished! {amount}! You're absolutely killing it! 😎🔥"),
    ("🎯", "Bullseye!", "Direct hit on {name}! {amount} in the bank! You're a savings sniper! 🎯💰"),
    ("⭐", "Star Performance!", "{name} achieved! {amount} saved! Netflix should make a documentary about you! 🌟📺"),
]

# (emoji, title, body) with {name}, {percentage} placeholders
PROGRESS_MESSAGES = [
    ("🎯", "So Close!", "{name} is {percentage}% done! You can smell victory from here! Keep smashing it! 💪"),
    ("🏃", "Sprint to the Finish!", "{name}: {percentage}%! The finish line is waving at you! Don't stop now, champ! 🏁"),
    ("🔥", "You're Heating Up!", "{name} at {percentage}%! You're on FIRE! 🔥 Almost there, superstar! ⭐"),
    ("💎", "Diamond Hands!", "{name}: {percentage}% complete! Your discipline is LEGENDARY! 💎🙌"),
    ("🎪", "Grand Finale Time!", "{name} is {percentage}% there! Time for the epic conclusion! 🎬✨"),
    ("🚂", "Full Steam Ahead!", "{name}: {percentage}%! The savings train has no brakes! Choo choo! 🚂💨"),
]


def format_amount(amount: Any) -> str:
    return f"{settings.CURRENCY_SYMBOL}{Decimal(str(amount)):,.2f}"


def achieved_message(goal_name: str, target_amount: Any, chooser: Chooser = random.choice) -> Tuple[str, str]:
    emoji, title, body = chooser(ACHIEVED_MESSAGES)
    return f"{emoji} {title}", body.format(name=goal_name, amount=format_amount(target_amount))


def progress_message(goal_name: str, percentage: Any, chooser: Chooser = random.choice) -> Tuple[str, str]:
    emoji, title, body = chooser(PROGRESS_MESSAGES)
    whole = f"{Decimal(str(percentage)):.0f}"
    return f"{emoji} {title}", body.format(name=goal_name, percentage=whole)


class QueuedNotification(BaseModel):
    user_id: uuid.UUID
    category: str
    title: str
    body: str
    status: str = "info"


class NotificationDispatcher:
    """
    One-way channel between the savings engine and the user.

    ``dispatch`` only enqueues and never raises. A background worker
    started with ``start`` persists each message and pushes it to any open
    WebSocket of the user.
    """

    def __init__(self, maxsize: Optional[int] = None, session_factory: Optional[async_sessionmaker] = None):
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize or settings.NOTIFICATION_QUEUE_SIZE)
        self.session_factory = session_factory or AsyncSessionLocal
        self._worker: Optional[asyncio.Task] = None

    def dispatch(self, user_id: uuid.UUID, category: str, title: str, body: str, status: str = "info") -> bool:
        item = QueuedNotification(user_id=user_id, category=category, title=title, body=body, status=status)
        try:
            self.queue.put_nowait(item)
        except asyncio.QueueFull:
            logger.warning(f"Notification queue full, dropping '{category}' alert for user {user_id}")
            return False
        return True

    async def deliver(self, item: QueuedNotification) -> None:
        async with self.session_factory() as db:
            notification_obj = await self._persist(db, item)
        await send_realtime_notification(item.user_id, notification_obj)

    async def _persist(self, db: AsyncSession, item: QueuedNotification):
        notification = NotificationCreate(
            user_id=item.user_id,
            title=item.title[:100],
            message=item.body[:500],
            type=item.category,
            status=item.status,
        )
        return await create_notification(db, notification)

    async def _deliver_safely(self, item: QueuedNotification) -> None:
        try:
            await self.deliver(item)
        except Exception as e:
            logger.error(f"Failed to deliver '{item.category}' notification to user {item.user_id}: {str(e)}")

    async def run(self) -> None:
        logger.info("Notification worker started")
        while True:
            item = await self.queue.get()
            try:
                await self._deliver_safely(item)
            finally:
                self.queue.task_done()

    async def drain(self) -> int:
        """Deliver everything queued right now without waiting for more"""
        delivered = 0
        while not self.queue.empty():
            item = self.queue.get_nowait()
            try:
                await self._deliver_safely(item)
                delivered += 1
            finally:
                self.queue.task_done()
        return delivered

    def start(self) -> None:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self.run())

    async def shutdown(self, timeout: float = 5.0) -> None:
        """Let the worker finish what is queued, then stop it and deliver any leftovers"""
        if self._worker is not None and not self._worker.done():
            try:
                await asyncio.wait_for(self.queue.join(), timeout)
            except asyncio.TimeoutError:
                logger.warning(f"Notification queue not flushed after {timeout}s, {self.queue.qsize()} pending")
        await self.stop()
        await self.drain()

    async def stop(self) -> None:
        if self._worker is None:
            return
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None
        logger.info("Notification worker stopped")


notification_dispatcher = NotificationDispatcher()


# WebSocket connection management
def connect_user(websocket: WebSocket, user_id: uuid.UUID):
    """Register a new WebSocket connection for a user"""
    if user_id not in active_connections:
        active_connections[user_id] = []
    active_connections[user_id].append(websocket)
    logger.info(f"User {user_id} connected. Total connections: {len(active_connections[user_id])}")

def disconnect_user(websocket: WebSocket, user_id: uuid.UUID):
    """Remove a WebSocket connection for a user"""
    if user_id in active_connections:
        if websocket in active_connections[user_id]:
            active_connections[user_id].remove(websocket)

        # Clean up if no connections left
        if not active_connections[user_id]:
            del active_connections[user_id]

    logger.info(f"User {user_id} disconnected. Remaining connections: {len(active_connections.get(user_id, []))}")

async def send_realtime_notification(user_id: uuid.UUID, notification: Any):
    """Send a notification to a user via WebSocket if they're connected"""
    if user_id not in active_connections:
        return

    created_at = getattr(notification, "created_at", None) or datetime.utcnow()
    notification_data = {
        "id": str(notification.id),
        "title": notification.title,
        "message": notification.message,
        "type": notification.type,
        "status": notification.status,
        "created_at": created_at.isoformat(),
    }

    # Send to all active connections for this user
    dead_connections = []
    for websocket in active_connections[user_id]:
        try:
            await websocket.send_json({
                "type": "notification",
                "data": notification_data
            })
        except Exception as e:
            logger.error(f"Failed to send to websocket: {str(e)}")
            dead_connections.append(websocket)

    # Clean up dead connections
    for dead in dead_connections:
        disconnect_user(dead, user_id)
