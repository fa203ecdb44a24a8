"""Message source backed by the application's own services and change feed."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError

from swiftride.errors import TransientStoreError
from swiftride.extensions import change_feed, db
from swiftride.services.chat_service import MESSAGES_RELATION, ChatService
from swiftride.services.profile_service import ProfileService
from swiftride.sync.feed import ChangeFeed, FeedSubscription

logger = logging.getLogger(__name__)


class StoreMessageSource:
    """Runs blocking store calls on a worker thread inside an app context."""

    def __init__(self, app, feed: Optional[ChangeFeed] = None) -> None:
        self._app = app
        self._feed = feed or change_feed

    def _call(self, func: Callable[..., Any], *args: Any) -> Any:
        with self._app.app_context():
            try:
                return func(*args)
            except SQLAlchemyError as exc:
                db.session.rollback()
                logger.warning("Store call %s failed: %s", func.__name__, exc)
                raise TransientStoreError("Store temporarily unavailable.") from exc

    async def _run(self, func: Callable[..., Any], *args: Any) -> Any:
        return await asyncio.to_thread(self._call, func, *args)

    async def fetch_messages(self, booking_id: int, principal_id: int) -> List[Dict[str, Any]]:
        def load():
            return [row.to_dict() for row in ChatService.list_messages(booking_id, principal_id)]

        return await self._run(load)

    async def fetch_profiles(self, user_ids: Iterable[int]) -> Dict[int, Mapping[str, Any]]:
        return await self._run(ProfileService.profiles_by_ids, list(user_ids))

    async def fetch_profile(self, user_id: int) -> Optional[Mapping[str, Any]]:
        return await self._run(ProfileService.profile_snapshot, user_id)

    async def subscribe_inserts(self, booking_id: int, callback: Callable[[Mapping[str, Any]], None]) -> FeedSubscription:
        return self._feed.subscribe(MESSAGES_RELATION, "booking_id", booking_id, callback)
