"""Custom exception classes for the application."""

from typing import Optional


class SoleScanException(Exception):
    """Base exception for all SoleScan errors."""

    def __init__(self, message: str = "An unexpected error occurred"):
        self.message = message
        super().__init__(self.message)


class InvalidQueryError(SoleScanException):
    """Raised when a search query or SKU fails validation."""


class ScraperError(SoleScanException):
    """Raised when a source adapter cannot produce data."""

    def __init__(self, source: str, message: str):
        self.source = source
        self.reason = message
        super().__init__(f"Scraper error for {source}: {message}")


class ChallengeBlockedError(ScraperError):
    """Raised when a bot challenge never cleared and could not be escalated."""

    def __init__(self, source: str, url: str, signature: str):
        self.url = url
        self.signature = signature
        super().__init__(source, f"blocked by bot challenge ({signature})")


class RateLimitError(ScraperError):
    """Raised when an upstream answers 429/403."""

    def __init__(self, source: str, status: Optional[int] = None):
        self.status = status
        detail = f"HTTP {status}" if status else "throttled"
        super().__init__(source, f"rate limited by upstream ({detail})")


class UnblockError(ScraperError):
    """Raised when the remote unblocking service fails."""

    def __init__(self, source: str, message: str):
        super().__init__(source, f"unblocking service failed: {message}")
