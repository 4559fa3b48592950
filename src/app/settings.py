from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Keys must be provided via env / .env (never hardcode secrets in code)
    openai_api_key: str | None = None
    model_name: str = "gpt-4o-mini"
    request_timeout: float = 30.0

    # Price lookup backend: "llm" or "quote_server"
    price_oracle: str = "llm"
    quote_server_url: str = "http://localhost:8003"
    fetch_timeout_seconds: float = 45.0

    # Scheduler timing
    tick_interval_seconds: float = 60.0
    open_fetch_delay_seconds: float = 5.0  # spacing between drain fetches
    closed_fetch_delay_seconds: float = 1.0  # spacing inside a closed-market sweep

    exchange_timezone: str = "America/New_York"
    symbol_stopwords: List[str] = []


settings = Settings()  # load once at import
