from typing import Dict, List

from src.app.schemas import Direction, PriceUpdate, TapeEntry


def classify(previous: float | None, current: float) -> Direction:
    if previous is None:
        return "new"
    if current > previous:
        return "up"
    if current < previous:
        return "down"
    return "unchanged"


class TickerTape:
    """Display-side view of the price stream.

    Direction is derived from the previously displayed price and is purely
    presentational; the registry does not keep it.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, TapeEntry] = {}

    def on_update(self, update: PriceUpdate) -> TapeEntry:
        prev = self._entries.get(update.symbol)
        previous_price = prev.price if prev else None
        entry = TapeEntry(
            symbol=update.symbol,
            price=update.price,
            previous_price=previous_price,
            direction=classify(previous_price, update.price),
            updated_at=update.observed_at,
        )
        self._entries[update.symbol] = entry
        return entry

    __call__ = on_update

    def mark_unavailable(self, symbol: str) -> None:
        self._entries[symbol] = TapeEntry(symbol=symbol, unavailable=True)

    def get(self, symbol: str) -> TapeEntry | None:
        return self._entries.get(symbol)

    def entries(self) -> List[TapeEntry]:
        return [self._entries[s] for s in sorted(self._entries)]
