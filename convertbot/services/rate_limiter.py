"""Per-chat request throttling held in process memory.

State lives in memory only: a restart resets every chat's quota and
language preference.
"""

import logging
import time
from collections.abc import Callable

from ..models import RateLimitState

logger = logging.getLogger(__name__)


def _now_ms() -> float:
    return time.time() * 1000


class RateLimiter:
    """Fixed-window request counter keyed by chat ID.

    Attributes:
        window_ms: Window length in milliseconds.
        max_requests: Requests allowed per window.
        default_language: Language assigned to chats seen for the first time.
    """

    def __init__(
        self,
        window_ms: int = 60_000,
        max_requests: int = 10,
        default_language: str = "zh",
        clock: Callable[[], float] = _now_ms,
    ):
        """Initialize rate limiter.

        Args:
            window_ms: Window length in milliseconds.
            max_requests: Requests allowed per window.
            default_language: Language for new chats.
            clock: Returns the current time in milliseconds.
        """
        self.window_ms = window_ms
        self.max_requests = max_requests
        self.default_language = default_language
        self._clock = clock
        self._states: dict[int, RateLimitState] = {}

    def state(self, chat_id: int) -> RateLimitState:
        """Return the chat's state, registering the chat if unseen."""
        state = self._states.get(chat_id)
        if state is None:
            state = RateLimitState(window_start=self._clock(), language=self.default_language)
            self._states[chat_id] = state
        return state

    def hit(self, chat_id: int) -> bool:
        """Count one request and report whether it is allowed.

        The window restarts at the current request once it has fully elapsed;
        otherwise the counter is incremented.

        Args:
            chat_id: Chat issuing the request.

        Returns:
            True if the request is within the limit, False if it must be rejected.
        """
        now = self._clock()
        state = self._states.get(chat_id)

        if state is None:
            state = RateLimitState(count=1, window_start=now, language=self.default_language)
            self._states[chat_id] = state
        elif now - state.window_start > self.window_ms:
            state.count = 1
            state.window_start = now
        else:
            state.count += 1

        if state.count > self.max_requests:
            logger.info(f"Chat {chat_id} exceeded rate limit ({state.count}/{self.max_requests})")
            return False
        return True

    def language(self, chat_id: int) -> str:
        """Language preference of a chat without registering it."""
        state = self._states.get(chat_id)
        return state.language if state else self.default_language

    def set_language(self, chat_id: int, language: str) -> None:
        """Store a chat's language preference."""
        self.state(chat_id).language = language
