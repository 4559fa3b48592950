import logging
from typing import List

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import StreamingResponse

from src.app.logging import configure_logging
from src.app.schemas import MarketStatus, TapeEntry, TrackRequest, TrackResponse
from src.app.settings import settings
from src.market.session import MarketSessionClock
from src.ticker.oracle import build_oracle
from src.ticker.publisher import UpdatePublisher
from src.ticker.registry import TickerRegistry
from src.ticker.scheduler import UpdateScheduler
from src.ticker.tape import TickerTape

configure_logging()

app = FastAPI(title="Stock Ticker Assistant")
logger = logging.getLogger(__name__)

registry = TickerRegistry()
publisher = UpdatePublisher()
tape = TickerTape()
publisher.add_observer(tape.on_update)
clock = MarketSessionClock(settings.exchange_timezone)
oracle = build_oracle(settings)
scheduler = UpdateScheduler(
    registry,
    oracle,
    publisher,
    clock,
    tick_interval=settings.tick_interval_seconds,
    open_delay=settings.open_fetch_delay_seconds,
    closed_delay=settings.closed_fetch_delay_seconds,
    stopwords=settings.symbol_stopwords,
    on_unavailable=tape.mark_unavailable,
)


def get_scheduler() -> UpdateScheduler:
    return scheduler


def get_tape() -> TickerTape:
    return tape


def get_publisher() -> UpdatePublisher:
    return publisher


def get_clock() -> MarketSessionClock:
    return clock


@app.on_event("startup")
async def start_scheduler():
    scheduler.start()


@app.on_event("shutdown")
async def stop_scheduler():
    await scheduler.stop()
    await oracle.close()


@app.post("/track", response_model=TrackResponse)
async def track(payload: TrackRequest, sched: UpdateScheduler = Depends(get_scheduler)):
    """Start tracking every ticker-like token in a user query."""
    try:
        results = await sched.track_query(payload.query)
    except Exception as exc:  # noqa: BLE001
        logger.exception("track handler failed")
        raise HTTPException(status_code=500, detail=str(exc))
    return TrackResponse(results=results)


@app.get("/tickers", response_model=List[TapeEntry])
def tickers(view: TickerTape = Depends(get_tape)):
    return view.entries()


@app.get("/tickers/stream")
async def ticker_stream(request: Request, pub: UpdatePublisher = Depends(get_publisher)):
    """Server-sent events, one `data:` line per price update."""
    sub = pub.subscribe()

    async def events():
        try:
            async for update in sub:
                if await request.is_disconnected():
                    break
                yield f"data: {update.model_dump_json()}\n\n"
        finally:
            sub.close()

    return StreamingResponse(events(), media_type="text/event-stream")


@app.get("/market", response_model=MarketStatus)
def market(session: MarketSessionClock = Depends(get_clock)):
    local = session.local_time()
    return MarketStatus(is_open=session.is_open(local), exchange_time=local, timezone=str(session.tz))


@app.get("/health")
def health():
    return {"status": "ok"}
