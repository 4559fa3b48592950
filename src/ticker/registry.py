import logging
from typing import Dict, Iterator, Optional, Set

logger = logging.getLogger(__name__)

_PENDING = object()  # first fetch in flight; never handed to observers


class TickerRegistry:
    """Tracked symbols and their last known price.

    A symbol is present iff it has resolved at least once or its first fetch
    is still in flight. Mutated only from the event loop thread.
    """

    def __init__(self) -> None:
        self._prices: Dict[str, object] = {}

    def has(self, symbol: str) -> bool:
        return symbol in self._prices

    __contains__ = has

    def __len__(self) -> int:
        return len(self._prices)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._prices))

    def begin_tracking(self, symbol: str) -> bool:
        """Insert `symbol` as pending. Returns False if it was already tracked."""
        if symbol in self._prices:
            return False
        self._prices[symbol] = _PENDING
        logger.debug("tracking %s (pending first fetch)", symbol)
        return True

    def record_price(self, symbol: str, price: float) -> bool:
        if symbol not in self._prices:
            logger.info("dropping price for %s: no longer tracked", symbol)
            return False
        self._prices[symbol] = price
        return True

    def drop_if_never_resolved(self, symbol: str) -> bool:
        if self._prices.get(symbol, None) is _PENDING:
            del self._prices[symbol]
            logger.info("stopped tracking %s: first lookup failed", symbol)
            return True
        return False

    def is_pending(self, symbol: str) -> bool:
        return self._prices.get(symbol) is _PENDING

    def price(self, symbol: str) -> Optional[float]:
        value = self._prices.get(symbol)
        return None if value is _PENDING else value  # type: ignore[return-value]

    def snapshot_keys(self) -> Set[str]:
        return set(self._prices)

    def snapshot(self) -> Dict[str, float]:
        """Resolved symbols only; pending entries are omitted."""
        return {s: p for s, p in self._prices.items() if p is not _PENDING}  # type: ignore[misc]
