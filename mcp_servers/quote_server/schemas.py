from pydantic import BaseModel


class FixtureQuote(BaseModel):
    symbol: str
    price: float
    currency: str


class QuoteText(BaseModel):
    symbol: str
    text: str
    source: str
