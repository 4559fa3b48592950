import asyncio
import logging
from typing import AsyncIterator, Callable, List

from src.app.logging import event
from src.app.schemas import PriceUpdate

logger = logging.getLogger(__name__)

Observer = Callable[[PriceUpdate], None]


class Subscription:
    """Channel of price updates for one consumer; iterate with `async for`."""

    def __init__(self, publisher: "UpdatePublisher"):
        self._publisher = publisher
        self.queue: asyncio.Queue[PriceUpdate] = asyncio.Queue()

    def __aiter__(self) -> AsyncIterator[PriceUpdate]:
        return self

    async def __anext__(self) -> PriceUpdate:
        return await self.queue.get()

    def close(self) -> None:
        self._publisher.unsubscribe(self)


class UpdatePublisher:
    """Fans price updates out to observers in publish order.

    One notification per `publish` call; bursts are not coalesced, consumers
    debounce on their side if they need to.
    """

    def __init__(self) -> None:
        self._observers: List[Observer] = []
        self._subscriptions: List[Subscription] = []

    def add_observer(self, observer: Observer) -> None:
        self._observers.append(observer)

    def remove_observer(self, observer: Observer) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def subscribe(self) -> Subscription:
        sub = Subscription(self)
        self._subscriptions.append(sub)
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        if sub in self._subscriptions:
            self._subscriptions.remove(sub)

    @property
    def subscriber_count(self) -> int:
        return len(self._observers) + len(self._subscriptions)

    def publish(self, symbol: str, price: float) -> PriceUpdate:
        update = PriceUpdate(symbol=symbol, price=price)
        event("price update", {"symbol": symbol, "price": price})
        for observer in list(self._observers):
            try:
                observer(update)
            except Exception:  # noqa: BLE001
                logger.exception("observer %r failed on %s", observer, symbol)
        for sub in list(self._subscriptions):
            sub.queue.put_nowait(update)
        return update
