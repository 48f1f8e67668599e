"""Bot-challenge aware page navigation for rendered-page adapters.

Every navigation walks the same state machine::

    NAVIGATING -> CHALLENGE_CHECK -> CLEAR   -> RESOLVED
                                  -> WAITING -> RESOLVED
                                             -> ESCALATE -> RESOLVED | BLOCKED
                                             -> BLOCKED

RESOLVED and BLOCKED are the only terminal states. A BLOCKED result is
turned into ChallengeBlockedError by the adapter so bot detection is
reported as a failure rather than as an empty result.
"""

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Tuple

import structlog
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from solescan.config import settings
from solescan.core.exceptions import ChallengeBlockedError, ScraperError

logger = structlog.get_logger(__name__)


class NavigationState(str, Enum):
    NAVIGATING = "navigating"
    CHALLENGE_CHECK = "challenge_check"
    CLEAR = "clear"
    WAITING = "waiting"
    RESOLVED = "resolved"
    ESCALATE = "escalate"
    BLOCKED = "blocked"


TERMINAL_STATES = (NavigationState.RESOLVED, NavigationState.BLOCKED)


@dataclass(frozen=True)
class ChallengeSignature:
    """Markers identifying one family of bot-challenge interstitials.

    Markers are matched case-insensitively as substrings.
    """

    name: str
    url_patterns: Tuple[str, ...] = ()
    title_markers: Tuple[str, ...] = ()
    body_markers: Tuple[str, ...] = ()

    def matches(self, url: str, title: str, body: str) -> bool:
        url, title, body = url.lower(), title.lower(), body.lower()
        return (
            any(p in url for p in self.url_patterns)
            or any(m in title for m in self.title_markers)
            or any(m in body for m in self.body_markers)
        )


CHALLENGE_SIGNATURES: Tuple[ChallengeSignature, ...] = (
    ChallengeSignature(
        name="cloudflare",
        url_patterns=("/cdn-cgi/challenge-platform", "__cf_chl_"),
        title_markers=("just a moment", "attention required! | cloudflare"),
        body_markers=("cf-browser-verification", "cf-challenge-running", "challenges.cloudflare.com/turnstile"),
    ),
    ChallengeSignature(
        name="perimeterx",
        title_markers=("access to this page has been denied",),
        body_markers=("px-captcha", "press &amp; hold", "press & hold"),
    ),
    ChallengeSignature(
        name="datadome",
        url_patterns=("captcha-delivery.com",),
        body_markers=("geo.captcha-delivery.com", "ct.captcha-delivery.com"),
    ),
    ChallengeSignature(
        name="akamai",
        title_markers=("access denied",),
        body_markers=("errors.edgesuite.net", "_abck_challenge"),
    ),
    ChallengeSignature(
        name="captcha",
        body_markers=("g-recaptcha", "h-captcha", "verify you are human", "are you a robot"),
    ),
)


def detect_challenge(url: str, title: str, body: str) -> Optional[ChallengeSignature]:
    """First known challenge signature matching a page, or None."""
    for signature in CHALLENGE_SIGNATURES:
        if signature.matches(url or "", title or "", body or ""):
            return signature
    return None


@dataclass
class NavigationResult:
    """Terminal outcome of one navigation."""

    state: NavigationState
    url: str
    html: str = ""
    signature: Optional[str] = None
    escalated: bool = False
    polls: int = 0
    status: Optional[int] = None
    history: List[NavigationState] = field(default_factory=list)

    @property
    def blocked(self) -> bool:
        return self.state == NavigationState.BLOCKED

    def raise_for_blocked(self, source: str) -> None:
        """Raise ChallengeBlockedError if this navigation ended BLOCKED."""
        if self.blocked:
            raise ChallengeBlockedError(source, self.url, self.signature or "unknown")


class Navigator:
    """Drives one page through the navigation state machine.

    Time is read from an injectable clock and waits go through an
    injectable sleep, so the polling schedule is testable without real
    delays.
    """

    def __init__(
        self,
        unblocker=None,
        unblock_mode: Optional[str] = None,
        poll_interval: Optional[float] = None,
        challenge_timeout: Optional[float] = None,
        settle_delay: Optional[float] = None,
        navigation_timeout_ms: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize navigator.

        Args:
            unblocker: Remote unblocking collaborator (None when not configured)
            unblock_mode: "never", "auto" or "always"
            poll_interval: Seconds between challenge re-checks
            challenge_timeout: Ceiling for waiting out a challenge
            settle_delay: Pause after a challenge clears
            navigation_timeout_ms: Ceiling for one page load
        """
        self.unblocker = unblocker
        self.unblock_mode = unblock_mode or settings.UNBLOCK_MODE
        self.poll_interval = settings.CHALLENGE_POLL_INTERVAL if poll_interval is None else poll_interval
        self.challenge_timeout = settings.CHALLENGE_TIMEOUT if challenge_timeout is None else challenge_timeout
        self.settle_delay = settings.CHALLENGE_SETTLE_DELAY if settle_delay is None else settle_delay
        self.navigation_timeout_ms = navigation_timeout_ms or settings.NAVIGATION_TIMEOUT_MS
        self._clock = clock
        self._sleep = sleep

    @property
    def can_escalate(self) -> bool:
        return self.unblocker is not None and self.unblock_mode in ("auto", "always")

    async def _check(self, page: Page) -> Optional[ChallengeSignature]:
        return detect_challenge(page.url, await page.title(), await page.content())

    async def navigate(self, page: Page, url: str, source: str = "") -> NavigationResult:
        """Load ``url`` in ``page`` and wait out any bot challenge.

        Returns:
            NavigationResult in a terminal state

        Raises:
            ScraperError: If ``always`` mode delegation fails
            playwright Error: If the page cannot be loaded at all
        """
        log = logger.bind(source=source, url=url)
        history = [NavigationState.NAVIGATING]

        if self.unblock_mode == "always" and self.unblocker is not None:
            return await self._escalate(url, source, history, log)

        response = None
        try:
            response = await page.goto(url, wait_until="networkidle", timeout=self.navigation_timeout_ms)
        except PlaywrightTimeoutError:
            # Long-polling pages never go idle; inspect whatever rendered
            log.info("navigation_idle_timeout", timeout_ms=self.navigation_timeout_ms)
        status = response.status if response is not None else None

        history.append(NavigationState.CHALLENGE_CHECK)
        signature = await self._check(page)
        if signature is None:
            history += [NavigationState.CLEAR, NavigationState.RESOLVED]
            return NavigationResult(
                state=NavigationState.RESOLVED,
                url=page.url,
                html=await page.content(),
                status=status,
                history=history,
            )

        log.info("challenge_detected", signature=signature.name)
        history.append(NavigationState.WAITING)
        deadline = self._clock() + self.challenge_timeout
        polls = 0
        while self._clock() < deadline:
            await self._sleep(self.poll_interval)
            polls += 1
            if await self._check(page) is None:
                log.info("challenge_resolved", signature=signature.name, polls=polls)
                if self.settle_delay:
                    await self._sleep(self.settle_delay)
                history.append(NavigationState.RESOLVED)
                return NavigationResult(
                    state=NavigationState.RESOLVED,
                    url=page.url,
                    html=await page.content(),
                    signature=signature.name,
                    polls=polls,
                    status=status,
                    history=history,
                )

        if self.can_escalate:
            try:
                result = await self._escalate(url, source, history, log, signature=signature.name)
            except ScraperError as e:
                log.warning("unblock_failed", signature=signature.name, error=e.reason)
            else:
                result.polls = polls
                return result

        log.warning("challenge_blocked", signature=signature.name, polls=polls)
        history.append(NavigationState.BLOCKED)
        return NavigationResult(
            state=NavigationState.BLOCKED,
            url=page.url or url,
            signature=signature.name,
            polls=polls,
            status=status,
            history=history,
        )

    async def _escalate(
        self,
        url: str,
        source: str,
        history: List[NavigationState],
        log,
        signature: Optional[str] = None,
    ) -> NavigationResult:
        history.append(NavigationState.ESCALATE)
        log.info("navigation_escalated", mode=self.unblock_mode, signature=signature)

        unblocked = await self.unblocker.unblock(
            url,
            {"wait_until": "networkidle", "timeout": self.navigation_timeout_ms},
            source_label=source,
        )

        remaining = detect_challenge(unblocked.url, "", unblocked.html)
        if remaining is not None:
            log.warning("challenge_blocked", signature=remaining.name, escalated=True)
            history.append(NavigationState.BLOCKED)
            return NavigationResult(
                state=NavigationState.BLOCKED,
                url=unblocked.url,
                signature=remaining.name,
                escalated=True,
                status=unblocked.status,
                history=history,
            )

        history.append(NavigationState.RESOLVED)
        return NavigationResult(
            state=NavigationState.RESOLVED,
            url=unblocked.url,
            html=unblocked.html,
            signature=signature,
            escalated=True,
            status=unblocked.status,
            history=history,
        )
