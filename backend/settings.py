import os

# Basic settings helper to read environment configuration.


def _as_bool(val: str | None, default: bool = False) -> bool:
    if val is None:
        return default
    return val.lower() in ("1", "true", "yes", "on")


def _as_int(val: str | None, default: int) -> int:
    if val is None or not val.strip():
        return default
    return int(val)


def _as_float(val: str | None, default: float) -> float:
    if val is None or not val.strip():
        return default
    return float(val)


class Settings:
    def __init__(self) -> None:
        self.OPENAI_API_KEY: str | None = os.getenv("OPENAI_API_KEY") or None
        self.OPENAI_MODEL: str = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
        self.EXTRACTOR_MAX_RETRIES: int = _as_int(os.getenv("EXTRACTOR_MAX_RETRIES"), 2)
        self.EXTRACTOR_TIMEOUT_SEC: float = _as_float(os.getenv("EXTRACTOR_TIMEOUT_SEC"), 20.0)

        self.GEOCODING_BASE_URL: str = os.getenv(
            "GEOCODING_BASE_URL", "https://geocoding-api.open-meteo.com/v1/search"
        )
        self.FORECAST_BASE_URL: str = os.getenv(
            "FORECAST_BASE_URL", "https://api.open-meteo.com/v1/forecast"
        )

        self.RESOLVE_MAX_ATTEMPTS: int = _as_int(os.getenv("RESOLVE_MAX_ATTEMPTS"), 3)
        self.RESOLVE_DEADLINE_SEC: float = _as_float(os.getenv("RESOLVE_DEADLINE_SEC"), 45.0)

        self.OUTFIT_NOTES_ENABLED: bool = _as_bool(os.getenv("OUTFIT_NOTES_ENABLED"), True)
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()


settings = Settings()
