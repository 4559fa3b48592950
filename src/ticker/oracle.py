import asyncio
import logging
import re
from typing import Any, Dict, Optional, Protocol

import httpx
from langchain_core.prompts import ChatPromptTemplate
from langchain_openai import ChatOpenAI

from src.app.settings import Settings, settings as default_settings
from src.prompts.price_prompt import PRICE_LOOKUP_SYSTEM, PRICE_LOOKUP_USER_TEMPLATE
from src.tools.openai_retry import retry_with_backoff

logger = logging.getLogger(__name__)

# Optional sign and currency, then either a comma-grouped or a plain number,
# and whether a percent sign follows (those are changes, not prices).
_NUMBER = re.compile(
    r"(?P<sign>-)?\s*(?P<cur>[$€£¥₹])?\s*"
    r"(?P<num>\d{1,3}(?:,\d{3})+(?:\.\d+)?|\d+(?:\.\d+)?)"
    r"(?P<pct>\s*%)?"
)
# ISO and US dates, clock times; blanked out before number matching
_DATE_LIKE = re.compile(
    r"\b\d{4}-\d{1,2}-\d{1,2}\b"
    r"|\b\d{1,2}/\d{1,2}/\d{2,4}\b"
    r"|\b\d{1,2}:\d{2}(?::\d{2})?\b"
)


def parse_price(text: Optional[str]) -> Optional[float]:
    """Extract a positive price from free-form lookup text.

    A currency-prefixed number wins over bare numbers; percentages are
    ignored, as are dates and clock times. Returns None when nothing parses
    to a positive value.
    """
    if not text:
        return None
    text = _DATE_LIKE.sub(" ", text)
    candidates = [m for m in _NUMBER.finditer(text) if not m.group("pct")]
    if not candidates:
        return None
    match = next((m for m in candidates if m.group("cur")), candidates[0])
    try:
        value = float(match.group("num").replace(",", ""))
    except ValueError:
        return None
    if match.group("sign"):
        value = -value
    if value <= 0:
        return None
    return value


class PriceLookup(Protocol):
    async def lookup(self, symbol: str) -> str: ...


@retry_with_backoff(max_retries=3, initial_delay=1.0, max_delay=30.0)
async def _ainvoke_with_retry(llm: ChatOpenAI, messages: list) -> str:
    response = await llm.ainvoke(messages)
    return str(response.content)


class LLMPriceLookup:
    """Asks the hosted model for a single ticker's latest price."""

    def __init__(self, llm: ChatOpenAI | None = None, cfg: Settings = default_settings):
        self._llm = llm
        self._cfg = cfg
        self._prompt = ChatPromptTemplate.from_messages(
            [("system", PRICE_LOOKUP_SYSTEM), ("user", PRICE_LOOKUP_USER_TEMPLATE)]
        )

    def _get_llm(self) -> ChatOpenAI:
        if self._llm is None:
            # IMPORTANT: only pass api_key if it is set, otherwise let langchain-openai
            # resolve OPENAI_API_KEY from the environment.
            kwargs: Dict[str, Any] = {
                "model": self._cfg.model_name,
                "temperature": 0,
                "timeout": self._cfg.request_timeout,
            }
            if self._cfg.openai_api_key:
                kwargs["api_key"] = self._cfg.openai_api_key
            self._llm = ChatOpenAI(**kwargs)
        return self._llm

    async def lookup(self, symbol: str) -> str:
        messages = self._prompt.format_messages(symbol=symbol)
        return await _ainvoke_with_retry(self._get_llm(), messages)


class QuoteServerLookup:
    """Price lookup against the local quote server (`POST /quote`)."""

    def __init__(self, base_url: str, timeout: float = 10.0, transport: httpx.AsyncBaseTransport | None = None):
        self.base_url = base_url.rstrip("/")
        self.client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def lookup(self, symbol: str) -> str:
        resp = await self.client.post(f"{self.base_url}/quote", json={"symbol": symbol})
        resp.raise_for_status()
        return str(resp.json().get("text", ""))

    async def close(self) -> None:
        await self.client.aclose()


class PriceOracleClient:
    """Validated, time-bounded access to a price lookup backend.

    `fetch_price` never raises: lookup errors, timeouts and unparseable text
    all come back as None.
    """

    def __init__(self, lookup: PriceLookup, timeout: float | None = None):
        self.lookup = lookup
        self.timeout = timeout

    async def fetch_price(self, symbol: str) -> Optional[float]:
        try:
            text = await asyncio.wait_for(self.lookup.lookup(symbol), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("price lookup for %s timed out after %ss", symbol, self.timeout)
            return None
        except Exception as exc:  # noqa: BLE001
            logger.warning("price lookup for %s failed: %s", symbol, exc)
            return None
        price = parse_price(text)
        if price is None:
            logger.warning("price lookup for %s returned no usable price: %r", symbol, (text or "")[:80])
        return price

    async def close(self) -> None:
        close = getattr(self.lookup, "close", None)
        if close is not None:
            await close()


def build_oracle(cfg: Settings = default_settings) -> PriceOracleClient:
    if cfg.price_oracle == "quote_server":
        lookup: PriceLookup = QuoteServerLookup(cfg.quote_server_url, timeout=cfg.request_timeout)
    elif cfg.price_oracle == "llm":
        lookup = LLMPriceLookup(cfg=cfg)
    else:
        raise ValueError(f"unknown price_oracle backend: {cfg.price_oracle!r}")
    return PriceOracleClient(lookup, timeout=cfg.fetch_timeout_seconds)
