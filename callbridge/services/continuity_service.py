from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from callbridge.logging_config import get_logger
from callbridge.schemas.records import ConversationThread
from callbridge.services.plain_service import PlainService

logger = get_logger("continuity_service")

DEFAULT_CONTINUITY_WINDOW = timedelta(hours=12)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ThreadContinuityPolicy:
    """Reuse the customer's most recently created thread while it is still fresh."""

    def __init__(
        self,
        plain: PlainService,
        window: timedelta = DEFAULT_CONTINUITY_WINDOW,
        lookup_limit: int = 10,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.plain = plain
        self.window = window
        self.lookup_limit = lookup_limit
        self.clock = clock

    def is_within_window(self, thread: ConversationThread, now: Optional[datetime] = None) -> bool:
        if thread.updated_at is None:
            return False
        updated_at = thread.updated_at
        if updated_at.tzinfo is None:
            updated_at = updated_at.replace(tzinfo=timezone.utc)
        now = now or self.clock()
        return now - updated_at < self.window

    async def find_reusable_thread(self, customer_id: str) -> Optional[ConversationThread]:
        """Most recently created thread if updated within the window, else None. Read-only."""
        threads = await self.plain.list_recent_threads(customer_id, limit=self.lookup_limit)
        if not threads:
            return None

        most_recent = threads[0]
        if self.is_within_window(most_recent):
            logger.info(f"Found recent thread {most_recent.id} updated at {most_recent.updated_at}")
            return most_recent

        logger.info(
            f"Most recent thread {most_recent.id} was updated at {most_recent.updated_at}, "
            f"which is older than {self.window}"
        )
        return None
