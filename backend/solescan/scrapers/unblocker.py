"""Remote unblocking through Browserless BrowserQL.

Used by the navigator as the escalation target when a challenge does not
clear locally. The remote browser runs behind a residential proxy in the
configured country.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx
import structlog

from solescan.config import settings
from solescan.core.exceptions import RateLimitError, UnblockError

logger = structlog.get_logger(__name__)

UNBLOCK_MUTATION = """
mutation Unblock($url: String!, $waitUntil: WaitUntilGoto, $timeout: Float) {
  goto(url: $url, waitUntil: $waitUntil, timeout: $timeout) {
    status
  }
  html {
    html
  }
  url {
    url
  }
}
"""

# Playwright load states -> BrowserQL goto waitUntil values
_WAIT_UNTIL = {
    "networkidle": "networkIdle",
    "load": "load",
    "domcontentloaded": "domContentLoaded",
    "commit": "commit",
}


@dataclass
class UnblockedPage:
    url: str
    html: str
    status: Optional[int] = None


class BrowserQLUnblocker:
    """Client for the BrowserQL stealth endpoint."""

    def __init__(
        self,
        api_token: Optional[str] = None,
        base_url: Optional[str] = None,
        proxy_country: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 60.0,
    ):
        self.api_token = api_token if api_token is not None else settings.BROWSERLESS_API_TOKEN
        self.base_url = base_url or settings.BROWSERLESS_URL
        self.proxy_country = proxy_country or settings.BROWSERLESS_PROXY_COUNTRY
        self.http_client = http_client
        self._owns_client = http_client is None
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.api_token)

    @property
    def endpoint(self) -> str:
        """Stealth BQL endpoint (websocket schemes are rewritten to HTTP)."""
        base = self.base_url.rstrip("/")
        if base.startswith("wss:"):
            base = "https:" + base[len("wss:"):]
        elif base.startswith("ws:"):
            base = "http:" + base[len("ws:"):]
        return f"{base}/stealth/bql"

    def _params(self) -> Dict[str, str]:
        return {
            "token": self.api_token,
            "proxy": "residential",
            "proxyCountry": self.proxy_country,
            "proxyLocaleMatch": "true",
            "blockConsentModals": "true",
        }

    def _get_client(self) -> httpx.AsyncClient:
        if self.http_client is None:
            self.http_client = httpx.AsyncClient(timeout=self.timeout)
        return self.http_client

    async def execute(self, mutation: str, variables: Dict[str, Any], source_label: str = "") -> Dict[str, Any]:
        """POST a BrowserQL mutation and return its ``data`` block.

        Raises:
            RateLimitError: On HTTP 429
            UnblockError: On any other failure
        """
        label = source_label or "browserql"
        if not self.configured:
            raise UnblockError(label, "BROWSERLESS_API_TOKEN is not set")

        try:
            response = await self._get_client().post(
                self.endpoint,
                params=self._params(),
                json={"query": mutation, "variables": variables},
            )
        except httpx.HTTPError as e:
            raise UnblockError(label, f"request failed: {e.__class__.__name__}") from e

        if response.status_code == 429:
            raise RateLimitError(label, 429)
        if response.is_error:
            detail = response.text
            if "<html" in detail.lower() or "<body" in detail.lower():
                detail = response.reason_phrase
            elif len(detail) > 200:
                detail = detail[:200] + "..."
            raise UnblockError(label, f"HTTP {response.status_code} - {detail}")

        try:
            payload = response.json()
        except ValueError as e:
            raise UnblockError(label, "response was not valid JSON") from e

        if payload.get("errors"):
            messages = "; ".join(str(err.get("message", err)) for err in payload["errors"])
            raise UnblockError(label, messages)
        return payload.get("data") or {}

    async def unblock(self, url: str, options: Optional[Dict[str, Any]] = None, source_label: str = "") -> UnblockedPage:
        """Perform a navigation remotely and return the rendered page.

        Args:
            url: Target URL
            options: Navigation options (``wait_until``, ``timeout`` in ms)
            source_label: Source slug for logs and errors
        """
        options = options or {}
        variables = {
            "url": url,
            "waitUntil": _WAIT_UNTIL.get(options.get("wait_until", "networkidle"), "networkIdle"),
            "timeout": float(options.get("timeout", settings.NAVIGATION_TIMEOUT_MS)),
        }
        logger.info("unblock_requested", source=source_label, url=url)
        data = await self.execute(UNBLOCK_MUTATION, variables, source_label=source_label)

        html = (data.get("html") or {}).get("html") or ""
        if not html:
            raise UnblockError(source_label or "browserql", "no HTML returned")
        return UnblockedPage(
            url=(data.get("url") or {}).get("url") or url,
            html=html,
            status=(data.get("goto") or {}).get("status"),
        )

    async def close(self) -> None:
        if self.http_client is not None and self._owns_client:
            await self.http_client.aclose()
            self.http_client = None
