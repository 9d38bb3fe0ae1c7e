"""Bounded exponential-backoff retry around remote provider calls.

Every call to the text, image and commerce providers goes through
RemoteCallExecutor.call(). Failures are first normalised into a
RemoteFailure record, then classified as transient (rate limit, quota,
overload, 5xx) or terminal. Transient failures are retried with a doubling
delay; terminal ones are re-raised untouched.
"""

from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, TypeVar

log = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_RETRIES = 5
DEFAULT_INITIAL_DELAY = 2.0  # seconds

TRANSIENT_MARKERS = (
    "429",
    "resource_exhausted",
    "quota",
    "internal",
    "overloaded",
    "server error",
)

BUSY_MESSAGE = "The AI service is temporarily busy. Please try again shortly."


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class ForgeError(Exception):
    """Base class for errors raised by the forge itself."""


class ServiceBusyError(ForgeError):
    """Transient provider errors persisted past the retry budget."""

    def __init__(self, attempts: int) -> None:
        super().__init__(BUSY_MESSAGE)
        self.attempts = attempts


class GenerationError(ForgeError):
    """A provider answered, but without the image or data we asked for."""


# ---------------------------------------------------------------------------
# Normalisation + classification
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RemoteFailure:
    status_code: Optional[int]
    message: str


class FailureKind(enum.Enum):
    TRANSIENT = "transient"
    TERMINAL = "terminal"


def _as_status(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return None


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def normalize_failure(exc: BaseException) -> RemoteFailure:
    """Map any provider exception onto a single {status_code, message} record.

    SDKs disagree on where the status lives: openai/anthropic use
    ``status_code``, replicate uses ``status``, google-genai uses ``code``,
    requests hangs it off ``response.status_code``, and raw API payloads
    nest it under ``error.code``.
    """
    nested = _field(exc, "error")
    response = _field(exc, "response")

    status = None
    for candidate in (
        _field(exc, "status_code"),
        _field(exc, "status"),
        _field(exc, "code"),
        _field(response, "status_code") if response is not None else None,
        _field(nested, "code") if nested is not None else None,
        _field(nested, "status") if nested is not None else None,
    ):
        status = _as_status(candidate)
        if status is not None:
            break

    message = _field(exc, "message")
    if not isinstance(message, str) or not message:
        nested_message = _field(nested, "message") if nested is not None else None
        message = nested_message if isinstance(nested_message, str) and nested_message else str(exc)
    if not message:
        message = repr(exc)

    return RemoteFailure(status_code=status, message=message)


def classify_failure(failure: RemoteFailure) -> FailureKind:
    text = failure.message.lower()
    if any(marker in text for marker in TRANSIENT_MARKERS):
        return FailureKind.TRANSIENT
    status = failure.status_code
    if status is not None and (status == 429 or 500 <= status < 600):
        return FailureKind.TRANSIENT
    return FailureKind.TERMINAL


# ---------------------------------------------------------------------------
# Executor
# ---------------------------------------------------------------------------

class RetryState(enum.Enum):
    ATTEMPTING = "attempting"
    WAITING = "waiting"
    SUCCEEDED = "succeeded"
    FAILED_TRANSIENT_EXHAUSTED = "failed_transient_exhausted"
    FAILED_TERMINAL = "failed_terminal"


class RemoteCallExecutor:
    """Runs zero-argument remote operations with bounded retry."""

    def __init__(
        self,
        max_retries: int = DEFAULT_MAX_RETRIES,
        initial_delay: float = DEFAULT_INITIAL_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self._sleep = sleep

    def call(self, operation: Callable[[], T], label: str = "remote call") -> T:
        state = RetryState.ATTEMPTING
        retries = 0
        delay = self.initial_delay
        result: Any = None
        last_exc: Optional[BaseException] = None

        while True:
            if state is RetryState.ATTEMPTING:
                try:
                    result = operation()
                except Exception as exc:
                    last_exc = exc
                    failure = normalize_failure(exc)
                    if classify_failure(failure) is FailureKind.TERMINAL:
                        state = RetryState.FAILED_TERMINAL
                        log.debug(
                            "%s failed, not retrying (%s: %s)",
                            label, failure.status_code, failure.message,
                        )
                        raise
                    if retries < self.max_retries:
                        retries += 1
                        log.warning(
                            "%s failed (%s: %s). Retrying in %.1fs (attempt %d/%d)",
                            label, failure.status_code, failure.message,
                            delay, retries, self.max_retries,
                        )
                        state = RetryState.WAITING
                    else:
                        state = RetryState.FAILED_TRANSIENT_EXHAUSTED
                else:
                    state = RetryState.SUCCEEDED

            elif state is RetryState.WAITING:
                self._sleep(delay)
                delay *= 2
                state = RetryState.ATTEMPTING

            elif state is RetryState.SUCCEEDED:
                if retries:
                    log.info("%s succeeded after %d retr%s", label, retries, "y" if retries == 1 else "ies")
                return result

            else:  # FAILED_TRANSIENT_EXHAUSTED
                log.error("%s still failing after %d retries: %s", label, retries, last_exc)
                raise ServiceBusyError(attempts=retries + 1) from last_exc
