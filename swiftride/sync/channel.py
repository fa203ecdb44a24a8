"""Per-booking chat subscription fed by a poll loop and a push listener."""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Protocol, Set, Union

from swiftride.errors import AppError, TransientStoreError
from swiftride.sync.log import ChatMessage, MessageLog

logger = logging.getLogger(__name__)

Row = Mapping[str, Any]
Profile = Mapping[str, Any]
UpdateCallback = Callable[[List[ChatMessage]], Union[None, Awaitable[None]]]

DEFAULT_POLL_INTERVAL = 2.0


class Unsubscribable(Protocol):
    def unsubscribe(self) -> None: ...


class MessageSource(Protocol):
    async def fetch_messages(self, booking_id: int, principal_id: int) -> List[Row]: ...

    async def fetch_profiles(self, user_ids: Iterable[int]) -> Dict[int, Profile]: ...

    async def fetch_profile(self, user_id: int) -> Optional[Profile]: ...

    async def subscribe_inserts(self, booking_id: int, callback: Callable[[Row], None]) -> Unsubscribable: ...


class BookingChannel:
    """Ordered, de-duplicated chat view for one booking.

    ``open()`` subscribes to inserts first and then performs the full fetch, so
    nothing committed in between is missed. After that the poll loop refetches
    every ``poll_interval`` seconds while pushed inserts are merged as they
    arrive. Both paths feed :class:`MessageLog`; ``on_update`` receives the full
    ordered list whenever it changes.

    A message whose sender profile cannot be fetched is left out of that
    delivery and picked up by a later poll.
    """

    def __init__(
        self,
        source: MessageSource,
        booking_id: int,
        principal_id: int,
        on_update: UpdateCallback,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        poll: bool = True,
        push: bool = True,
    ) -> None:
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        self.booking_id = booking_id
        self.principal_id = principal_id
        self._source = source
        self._on_update = on_update
        self._poll_interval = poll_interval
        self._poll_enabled = poll
        self._push_enabled = push

        self._log = MessageLog()
        self._profiles: Dict[int, Profile] = {}
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._poll_task: Optional[asyncio.Task] = None
        self._subscription: Optional[Unsubscribable] = None
        self._pending: Set[asyncio.Task] = set()
        self._opened = False
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def messages(self) -> List[ChatMessage]:
        return self._log.snapshot()

    async def open(self) -> "BookingChannel":
        if self._opened:
            return self
        self._opened = True
        self._loop = asyncio.get_running_loop()
        try:
            if self._push_enabled:
                self._subscription = await self._source.subscribe_inserts(self.booking_id, self._receive_insert)
            await self.refresh(initial=True)
        except BaseException:
            await self.close()
            raise
        if self._poll_enabled:
            self._poll_task = asyncio.create_task(self._poll_loop(), name=f"chat-poll-{self.booking_id}")
        logger.debug("Opened chat channel for booking %s", self.booking_id)
        return self

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True

        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

        if self._poll_task is not None:
            self._poll_task.cancel()
            try:
                await self._poll_task
            except asyncio.CancelledError:
                pass
            self._poll_task = None

        # Let enrichment fetches already in flight finish; their results are ignored.
        if self._pending:
            _, still_running = await asyncio.wait(set(self._pending), timeout=self._poll_interval)
            for task in still_running:
                task.cancel()
        logger.debug("Closed chat channel for booking %s", self.booking_id)

    async def __aenter__(self) -> "BookingChannel":
        return await self.open()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def refresh(self, initial: bool = False) -> None:
        """Pull path: refetch every message and the profiles of their senders."""
        rows = await self._source.fetch_messages(self.booking_id, self.principal_id)
        if self._closed:
            return

        sender_ids = {row["sender_id"] for row in rows}
        if sender_ids:
            try:
                self._profiles.update(await self._source.fetch_profiles(sender_ids))
            except TransientStoreError as exc:
                logger.warning("Profile fetch failed for booking %s chat: %s", self.booking_id, exc.message)
            if self._closed:
                return

        batch = []
        deferred = 0
        for row in rows:
            sender = self._profiles.get(row["sender_id"])
            if sender is None:
                deferred += 1
                continue
            batch.append(ChatMessage.from_row(row, sender))
        if deferred:
            logger.info("Deferred %d message(s) on booking %s until sender profiles load", deferred, self.booking_id)
        await self._deliver(batch, force=initial)

    def _receive_insert(self, row: Row) -> None:
        # Called from whichever thread published the insert.
        if self._closed or self._loop is None:
            return
        try:
            self._loop.call_soon_threadsafe(self._schedule_insert, row)
        except RuntimeError:
            logger.debug("Dropped insert for booking %s: event loop is closed", self.booking_id)

    def _schedule_insert(self, row: Row) -> None:
        if self._closed:
            return
        task = asyncio.create_task(self._handle_insert(row))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _handle_insert(self, row: Row) -> None:
        sender_id = row["sender_id"]
        sender = self._profiles.get(sender_id)
        if sender is None:
            try:
                sender = await self._source.fetch_profile(sender_id)
            except TransientStoreError as exc:
                logger.warning("Could not load sender %s for pushed message %s: %s", sender_id, row["id"], exc.message)
                return
            if sender is None:
                logger.info("Sender %s has no profile yet; message %s waits for the next poll", sender_id, row["id"])
                return
            self._profiles[sender_id] = sender
        if self._closed:
            return
        await self._deliver([ChatMessage.from_row(row, sender)])

    async def _deliver(self, batch: List[ChatMessage], force: bool = False) -> None:
        if self._closed:
            return
        changed = self._log.merge(batch)
        if not (changed or force):
            return
        try:
            result = self._on_update(self._log.snapshot())
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Chat update handler failed for booking %s", self.booking_id)

    async def _poll_loop(self) -> None:
        while not self._closed:
            await asyncio.sleep(self._poll_interval)
            if self._closed:
                break
            try:
                await self.refresh()
            except TransientStoreError as exc:
                logger.warning("Chat poll for booking %s failed, retrying next cycle: %s", self.booking_id, exc.message)
            except AppError as exc:
                logger.error("Stopping chat poll for booking %s: %s", self.booking_id, exc.message)
                break
            except Exception:
                # A malformed row must not end the loop; the next cycle refetches everything.
                logger.exception("Chat poll for booking %s failed, retrying next cycle", self.booking_id)


async def open_booking_channel(
    source: MessageSource,
    booking_id: int,
    principal_id: int,
    on_update: UpdateCallback,
    *,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
    poll: bool = True,
    push: bool = True,
) -> BookingChannel:
    channel = BookingChannel(
        source,
        booking_id,
        principal_id,
        on_update,
        poll_interval=poll_interval,
        poll=poll,
        push=push,
    )
    return await channel.open()
