import asyncio
import inspect
from datetime import datetime
from typing import Awaitable, Callable, Dict, List, Union
from zoneinfo import ZoneInfo

import pytest

from src.market.session import MarketSessionClock
from src.ticker.oracle import PriceOracleClient
from src.ticker.publisher import UpdatePublisher
from src.ticker.registry import TickerRegistry
from src.ticker.scheduler import UpdateScheduler

NY = ZoneInfo("America/New_York")
OPEN_NOW = datetime(2024, 7, 5, 12, 0, tzinfo=NY)  # Friday midday
CLOSED_NOW = datetime(2024, 7, 6, 12, 0, tzinfo=NY)  # Saturday

Response = Union[str, Exception, Callable[[], str], Callable[[], Awaitable[str]]]


class FakeLookup:
    """Scriptable price lookup; unknown symbols answer "N/A"."""

    def __init__(self, responses: Dict[str, Response] | None = None):
        self.responses: Dict[str, Response] = dict(responses or {})
        self.calls: List[str] = []
        self.gate: asyncio.Event | None = None
        self.in_flight = 0
        self.max_in_flight = 0

    async def lookup(self, symbol: str) -> str:
        self.calls.append(symbol)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.gate is not None:
                await self.gate.wait()
            resp = self.responses.get(symbol, "N/A")
            if isinstance(resp, Exception):
                raise resp
            if inspect.iscoroutinefunction(resp):
                return await resp()
            if callable(resp):
                return resp()
            return resp
        finally:
            self.in_flight -= 1


class FakeSleep:
    """Records requested delays and yields to the loop without waiting."""

    def __init__(self, on_sleep: Callable[[float], None] | None = None):
        self.delays: List[float] = []
        self.on_sleep = on_sleep

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        if self.on_sleep is not None:
            self.on_sleep(delay)
        await asyncio.sleep(0)


class Clock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def lookup():
    return FakeLookup({"AAPL": "$227.48", "MSFT": "415.26", "TSLA": "219.16 USD"})


@pytest.fixture
def registry():
    return TickerRegistry()


@pytest.fixture
def publisher():
    return UpdatePublisher()


@pytest.fixture
def published(publisher):
    seen = []
    publisher.add_observer(lambda u: seen.append((u.symbol, u.price)))
    return seen


@pytest.fixture
def fake_sleep():
    return FakeSleep()


@pytest.fixture
def make_scheduler(registry, publisher, lookup, fake_sleep):
    def _make(now: datetime = OPEN_NOW, **kwargs) -> UpdateScheduler:
        return UpdateScheduler(
            registry,
            PriceOracleClient(lookup),
            publisher,
            MarketSessionClock(),
            tick_interval=60.0,
            open_delay=5.0,
            closed_delay=1.0,
            now=kwargs.pop("now_fn", Clock(now)),
            sleep=kwargs.pop("sleep", fake_sleep),
            **kwargs,
        )

    return _make


def seed(registry: TickerRegistry, **prices: float) -> None:
    for symbol, price in prices.items():
        registry.begin_tracking(symbol)
        registry.record_price(symbol, price)
