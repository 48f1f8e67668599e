"""Desktop browser identities used for outbound requests."""

import random
from typing import Dict, List, Optional


# Must match the engine the rendered-page adapters drive (Chromium)
CHROMIUM_USER_AGENTS: List[str] = [
    # Chrome on Windows
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/130.0.0.0 Safari/537.36",
    # Chrome on macOS
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/130.0.0.0 Safari/537.36",
    # Edge on Windows
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36 Edg/131.0.0.0",
]

# Plain HTTP adapters are not tied to an engine
HTTP_USER_AGENTS: List[str] = CHROMIUM_USER_AGENTS + [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:133.0) Gecko/20100101 Firefox/133.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/18.1 Safari/605.1.15",
]

ACCEPT_LANGUAGE = "en-CA,en;q=0.9"
ACCEPT_HTML = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"
ACCEPT_JSON = "application/json, text/plain, */*"


def get_chromium_user_agent() -> str:
    """Random desktop Chromium user-agent string."""
    return random.choice(CHROMIUM_USER_AGENTS)


def get_random_user_agent() -> str:
    """Random desktop user-agent string for plain HTTP requests."""
    return random.choice(HTTP_USER_AGENTS)


def browser_headers(user_agent: Optional[str] = None, accept: str = ACCEPT_HTML) -> Dict[str, str]:
    """Headers a real desktop browser in Canada would send.

    Args:
        user_agent: Agent to advertise (random desktop agent if omitted)
        accept: Accept header value

    Returns:
        Header mapping suitable for httpx or a Playwright context
    """
    return {
        "User-Agent": user_agent or get_random_user_agent(),
        "Accept": accept,
        "Accept-Language": ACCEPT_LANGUAGE,
    }
