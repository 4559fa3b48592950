"""Rate-limited price refresh loop for tracked tickers.

While the market is open a drain loop pops one symbol at a time from the work
queue, fetches it, then sleeps the pacing delay before the next step; the
queue is refilled from the registry whenever it runs dry. While closed, each
periodic tick performs one sequential sweep over every tracked symbol.
Newly mentioned symbols are fetched immediately instead of waiting for a tick.
"""
import asyncio
import logging
from collections import deque
from datetime import datetime, timezone
from typing import Awaitable, Callable, Deque, Iterable, List, Optional, Set

from src.app.schemas import TrackResult
from src.market.session import MarketSessionClock
from src.ticker.extract import extract_symbols
from src.ticker.oracle import PriceOracleClient
from src.ticker.publisher import UpdatePublisher
from src.ticker.registry import TickerRegistry

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UpdateScheduler:
    def __init__(
        self,
        registry: TickerRegistry,
        oracle: PriceOracleClient,
        publisher: UpdatePublisher,
        clock: MarketSessionClock,
        *,
        tick_interval: float = 60.0,
        open_delay: float = 5.0,
        closed_delay: float = 1.0,
        stopwords: Iterable[str] = (),
        on_unavailable: Optional[Callable[[str], None]] = None,
        now: Callable[[], datetime] = _utcnow,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.registry = registry
        self.oracle = oracle
        self.publisher = publisher
        self.clock = clock
        self.tick_interval = tick_interval
        self.open_delay = open_delay
        self.closed_delay = closed_delay
        self.stopwords = list(stopwords)
        self.on_unavailable = on_unavailable
        self._now = now
        self._sleep = sleep

        self.queue: Deque[str] = deque()
        self._cycle: Set[str] = set()  # symbols loaded since the last refill
        self._running = False  # drain fetch in flight
        self._sweeping = False
        self._drain_task: Optional[asyncio.Task] = None
        self._tick_task: Optional[asyncio.Task] = None

    # -- state -----------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._running

    @property
    def drain_active(self) -> bool:
        return self._drain_task is not None and not self._drain_task.done()

    def market_open(self) -> bool:
        return self.clock.is_open(self._now())

    # -- periodic tick ---------------------------------------------------

    async def manage(self) -> None:
        """One scheduling decision: keep the drain loop alive when open, sweep when closed."""
        if self.market_open():
            self._kick_drain()
        else:
            await self.sweep()

    async def run_forever(self) -> None:
        while True:
            try:
                await self.manage()
            except Exception:  # noqa: BLE001
                logger.exception("scheduler tick failed")
            await self._sleep(self.tick_interval)

    def start(self) -> None:
        if self._tick_task and not self._tick_task.done():
            return
        self._tick_task = asyncio.create_task(self.run_forever(), name="ticker-scheduler")
        logger.info(
            "ticker scheduler started (tick=%ss open_delay=%ss closed_delay=%ss)",
            self.tick_interval,
            self.open_delay,
            self.closed_delay,
        )

    async def stop(self) -> None:
        for task in (self._tick_task, self._drain_task):
            if task is None or task.done():
                continue
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tick_task = None
        self._drain_task = None

    # -- market open: drain ---------------------------------------------

    def refill(self) -> bool:
        """Load every tracked symbol into the empty work queue."""
        if self.queue or len(self.registry) == 0:
            return False
        self.queue.extend(sorted(self.registry.snapshot_keys()))
        self._cycle = set(self.queue)
        logger.debug("work queue refilled with %d symbols", len(self.queue))
        return True

    async def drain_step(self) -> bool:
        """Fetch one queued symbol. Returns False when skipped or there was nothing to do."""
        if self._running:
            return False
        symbol = self._next_queued()
        if symbol is None:
            return False
        self._running = True
        try:
            price = await self.oracle.fetch_price(symbol)
            if price is not None:
                self._apply(symbol, price)
        finally:
            self._running = False
        return True

    def _next_queued(self) -> Optional[str]:
        """Pop the oldest queued symbol that is still tracked, refilling once if the queue runs dry."""
        for _ in range(2):
            if not self.queue:
                self.refill()
            while self.queue:
                symbol = self.queue.popleft()
                if symbol in self.registry:
                    return symbol
        return None

    async def _drain_loop(self, initial_delay: float = 0.0) -> None:
        if initial_delay:
            await self._sleep(initial_delay)
        while self.market_open():
            try:
                fetched = await self.drain_step()
            except Exception:  # noqa: BLE001
                logger.exception("drain step failed")
                fetched = True
            if not fetched and not self._running:
                break
            await self._sleep(self.open_delay)

    def _kick_drain(self, initial_delay: float = 0.0) -> None:
        if self.drain_active:
            return
        self._drain_task = asyncio.create_task(self._drain_loop(initial_delay), name="ticker-drain")

    # -- market closed: sweep -------------------------------------------

    async def sweep(self) -> int:
        """Fetch every tracked symbol once, in sequence. Returns the number of prices recorded."""
        if self._sweeping:
            return 0
        self._sweeping = True
        recorded = 0
        try:
            for i, symbol in enumerate(sorted(self.registry.snapshot_keys())):
                if i:
                    await self._sleep(self.closed_delay)
                if symbol not in self.registry:
                    continue
                price = await self.oracle.fetch_price(symbol)
                if price is not None and self._apply(symbol, price):
                    recorded += 1
        finally:
            self._sweeping = False
        return recorded

    # -- new symbols -----------------------------------------------------

    async def track(self, symbol: str) -> TrackResult:
        symbol = symbol.strip().upper()
        if not self.registry.begin_tracking(symbol):
            return TrackResult(symbol=symbol, status="already_tracked", price=self.registry.price(symbol))

        price = await self.oracle.fetch_price(symbol)
        if price is None:
            if self.registry.drop_if_never_resolved(symbol):
                if self.on_unavailable is not None:
                    self.on_unavailable(symbol)
                return TrackResult(symbol=symbol, status="unavailable")
            # a concurrent refresh resolved it first
            return TrackResult(symbol=symbol, status="tracking", price=self.registry.price(symbol))

        self._apply(symbol, price)
        if self.market_open():
            if symbol not in self._cycle:
                self.queue.append(symbol)
                self._cycle.add(symbol)
            self._kick_drain(initial_delay=self.open_delay)
        return TrackResult(symbol=symbol, status="tracking", price=price)

    async def track_query(self, text: str) -> List[TrackResult]:
        results = []
        for symbol in extract_symbols(text, self.stopwords):
            results.append(await self.track(symbol))
        return results

    def _apply(self, symbol: str, price: float) -> bool:
        if not self.registry.record_price(symbol, price):
            return False
        self.publisher.publish(symbol, price)
        return True
