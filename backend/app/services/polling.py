"""
Status Polling

Re-fetches an entity on a fixed interval while it is in an active state.

The continue/stop decision reads `poller.latest` on every tick, and that
value is replaced by each fetch (or by `update()` when the caller learns
of a change some other way), so the loop never acts on a stale status.
Stopping cancels the task; a fetch that completes after stop() is
discarded instead of being delivered.
"""
import asyncio
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from app.core.settings import get_settings
from app.core.status_config import is_campaign_active
from app.exceptions import ZRPException
from app.logging_config import get_logger
from app.schemas.campaign import FirmwareCampaign

logger = get_logger(__name__)

T = TypeVar("T")


class StatusPoller(Generic[T]):
    def __init__(
        self,
        fetch: Callable[[], Awaitable[T]],
        is_active: Callable[[T], bool],
        interval: Optional[float] = None,
        on_update: Optional[Callable[[T], None]] = None,
        name: str = "poller",
    ):
        self._fetch = fetch
        self._is_active = is_active
        self.interval = interval if interval is not None else get_settings().POLL_INTERVAL_SECONDS
        self._on_update = on_update
        self.name = name
        self.latest: Optional[T] = None
        self.fetch_count = 0
        self._task: Optional[asyncio.Task] = None
        self._stopped = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def update(self, value: T) -> None:
        """Record a fresh value; the next tick decides from it"""
        self.latest = value

    def start(self, initial: T) -> Optional[asyncio.Task]:
        """Begin polling from `initial`; nothing starts for an inactive entity"""
        if self.running:
            return self._task
        self._stopped = False
        self.latest = initial
        if not self._is_active(initial):
            logger.debug(f"{self.name}: entity inactive, not polling")
            return None
        self._task = asyncio.create_task(self._run())
        return self._task

    def stop(self) -> None:
        self._stopped = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def wait(self) -> None:
        """Block until the loop ends on its own (entity became inactive)"""
        if self._task is not None:
            try:
                await self._task
            except asyncio.CancelledError:
                pass

    def _should_continue(self) -> bool:
        if self._stopped:
            return False
        if self.latest is None or not self._is_active(self.latest):
            logger.debug(f"{self.name}: entity inactive, polling stopped")
            return False
        return True

    async def _run(self) -> None:
        while self._should_continue():
            await asyncio.sleep(self.interval)
            # Status may have changed while sleeping
            if not self._should_continue():
                return
            try:
                value = await self._fetch()
            except ZRPException as e:
                logger.warning(f"{self.name}: poll failed: {e.message}")
                continue
            if self._stopped:
                return
            self.fetch_count += 1
            self.latest = value
            logger.debug(f"{self.name}: tick {self.fetch_count}")
            if self._on_update is not None:
                self._on_update(value)


class CampaignMonitor:
    """
    Polls one firmware campaign at a time.

    Watching a different campaign stops the previous poller first, so no
    timer outlives the campaign it was started for.
    """

    def __init__(self, client, interval: Optional[float] = None):
        self.client = client
        self.interval = interval
        self.campaign_id: Optional[str] = None
        self._poller: Optional[StatusPoller[FirmwareCampaign]] = None

    @property
    def current(self) -> Optional[FirmwareCampaign]:
        return self._poller.latest if self._poller is not None else None

    @property
    def polling(self) -> bool:
        return self._poller is not None and self._poller.running

    def watch(
        self,
        campaign: FirmwareCampaign,
        on_update: Optional[Callable[[FirmwareCampaign], None]] = None,
    ) -> StatusPoller[FirmwareCampaign]:
        self.stop()
        campaign_id = campaign.id

        async def fetch() -> FirmwareCampaign:
            return await self.client.fetch_campaign(campaign_id)

        self.campaign_id = campaign_id
        self._poller = StatusPoller(
            fetch,
            lambda c: is_campaign_active(c.status),
            interval=self.interval,
            on_update=on_update,
            name=f"campaign {campaign_id}",
        )
        self._poller.start(campaign)
        return self._poller

    def update(self, campaign: FirmwareCampaign) -> None:
        """Apply a status change learned outside the poll loop (e.g. pause)"""
        if self._poller is not None and campaign.id == self.campaign_id:
            self._poller.update(campaign)

    def stop(self) -> None:
        if self._poller is not None:
            self._poller.stop()
        self._poller = None
        self.campaign_id = None
