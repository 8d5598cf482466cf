from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Literal


class Settings(BaseSettings):
    ENVIRONMENT: Literal["local", "production"] = "local"

    SECRET_KEY: str = ""
    BACKTEST_API_URL: str = "http://localhost:8000"
    CANDLE_API_URL: str = "https://api.binance.com"
    LOG_DIR: str = "logs"

    CHART_WINDOW_CAP: int = 400
    CHART_DEBOUNCE_MS: int = 500
    CHART_MAX_BARS_PER_LOAD: int = 50
    CHART_INITIAL_BARS: int = 100
    CHART_HEIGHT_PX: int = 500
    CANDLE_MAX_PER_REQUEST: int = 1000
    MARKER_TOOLTIP_TOLERANCE_S: int = 60

    model_config = SettingsConfigDict(
        env_file=".env", env_ignore_empty=True, extra="ignore"
    )


settings = Settings()
