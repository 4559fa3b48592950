import json
import pathlib
from functools import lru_cache
from typing import Dict

from mcp_servers.quote_server.schemas import FixtureQuote, QuoteText

FIXTURE_PATH = pathlib.Path(__file__).parent / "fixtures" / "quotes.json"


@lru_cache(maxsize=1)
def load_quotes() -> Dict[str, FixtureQuote]:
    data = json.loads(FIXTURE_PATH.read_text(encoding="utf-8"))
    return {row["symbol"]: FixtureQuote(**row) for row in data}


def lookup_quote(symbol: str) -> QuoteText:
    """Free-form price text for one ticker, "N/A" when the symbol is unknown."""
    code = symbol.strip().upper()
    quote = load_quotes().get(code)
    if quote is None:
        return QuoteText(symbol=code, text="N/A", source="fixtures")
    text = f"{code} last traded at ${quote.price:,.2f} {quote.currency}"
    return QuoteText(symbol=code, text=text, source="fixtures")
