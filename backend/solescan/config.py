"""Application configuration via Pydantic Settings."""

from typing import List, Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Global application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    # App
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # Result cache (empty URL disables caching entirely)
    REDIS_URL: str = ""
    SEARCH_CACHE_TTL: int = 60

    # Currency
    DISPLAY_CURRENCY: str = "CAD"
    EXCHANGE_RATE_API_URL: str = "https://api.exchangerate-api.com/v4/latest/CAD"
    EXCHANGE_RATE_TTL: int = 3600

    # Adapter ceilings (seconds)
    API_ADAPTER_TIMEOUT: float = 15.0
    BROWSER_ADAPTER_TIMEOUT: float = 45.0
    HTTP_MAX_ATTEMPTS: int = 3

    # Browser
    BROWSER_HEADLESS: bool = True
    BROWSER_EXECUTABLE_PATH: str = ""
    BROWSER_IDLE_TIMEOUT: float = 30.0
    NAVIGATION_TIMEOUT_MS: int = 30000

    # Bot challenge handling
    CHALLENGE_POLL_INTERVAL: float = 0.5
    CHALLENGE_TIMEOUT: float = 15.0
    CHALLENGE_SETTLE_DELAY: float = 1.0
    UNBLOCK_MODE: Literal["never", "auto", "always"] = "auto"

    # Browserless BrowserQL (remote unblocking)
    BROWSERLESS_API_TOKEN: str = ""
    BROWSERLESS_URL: str = "https://production-sfo.browserless.io"
    BROWSERLESS_PROXY_COUNTRY: str = "ca"

    # Sources allowed to degrade to the synthetic catalog when they come back empty
    SYNTHETIC_FALLBACK_SOURCES: str = ""

    # Backoff after 429/403 responses
    RATE_LIMIT_BACKOFF_BASE: float = 2.0
    RATE_LIMIT_BACKOFF_MAX: float = 30.0

    # Query validation
    QUERY_MIN_LENGTH: int = 2
    QUERY_MAX_LENGTH: int = 100

    # Frontend
    FRONTEND_URL: str = "http://localhost:3000"

    def get_synthetic_fallback_sources(self) -> List[str]:
        """Parse SYNTHETIC_FALLBACK_SOURCES into a list of source slugs.

        Returns:
            List of slugs, empty if the fallback is disabled everywhere
        """
        if not self.SYNTHETIC_FALLBACK_SOURCES:
            return []
        return [s.strip() for s in self.SYNTHETIC_FALLBACK_SOURCES.split(",") if s.strip()]

    @property
    def unblocker_configured(self) -> bool:
        return bool(self.BROWSERLESS_API_TOKEN)


settings = Settings()
