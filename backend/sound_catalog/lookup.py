"""Asset details lookup with retry, exponential backoff and rate-limit handling."""
from __future__ import annotations

import enum
import logging
import math
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

import httpx
import tenacity
from tenacity import RetryCallState, retry_if_exception_type, retry_if_result
from tenacity.wait import wait_base

from .settings import DEFAULT_LOOKUP_URL

logger = logging.getLogger(__name__)

DEFAULT_RETRIES = 4
DEFAULT_BASE_DELAY_MS = 500
DEFAULT_TIMEOUT = 10.0
NAME_FIELDS = ("Name", "name")


class LookupState(str, enum.Enum):
    """Terminal states of a single identifier lookup."""

    SUCCEEDED = "succeeded"
    FAILED_FAST = "failed_fast"
    EXHAUSTED_RETRIES = "exhausted_retries"


@dataclass(slots=True)
class LookupResult:
    """Outcome of resolving one asset id."""

    asset_id: str
    name: Optional[str]
    state: LookupState
    attempts: int
    status_code: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.state is LookupState.SUCCEEDED


def backoff_delay_ms(base_delay_ms: float, attempt: int) -> float:
    """Exponential backoff for a zero-based attempt number."""

    return base_delay_ms * (2 ** attempt)


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Return the Retry-After hint in seconds, or ``None`` when absent or unusable."""

    if value is None:
        return None
    try:
        seconds = float(value.strip())
    except ValueError:
        return None
    if not math.isfinite(seconds) or seconds <= 0:
        return None
    return seconds


def extract_name(payload: Any) -> Optional[str]:
    """Pick the first non-empty name field from an asset details payload."""

    if not isinstance(payload, dict):
        return None
    for field_name in NAME_FIELDS:
        value = payload.get(field_name)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def is_transient_response(response: httpx.Response) -> bool:
    """Rate limiting and server errors are worth another attempt."""

    return response.status_code == 429 or 500 <= response.status_code < 600


class WaitRetryAfter(wait_base):
    """Wait strategy that prefers a 429's Retry-After hint over exponential backoff."""

    def __init__(self, base_delay_ms: float) -> None:
        self.base_delay_ms = base_delay_ms

    def __call__(self, retry_state: RetryCallState) -> float:
        outcome = retry_state.outcome
        if outcome is not None and not outcome.failed:
            response = outcome.result()
            if response.status_code == 429:
                hint = parse_retry_after(response.headers.get("Retry-After"))
                if hint is not None:
                    return hint
        return backoff_delay_ms(self.base_delay_ms, retry_state.attempt_number - 1) / 1000.0


def _log_retry(asset_id: str, total_attempts: int) -> Callable[[RetryCallState], None]:
    def before_sleep(retry_state: RetryCallState) -> None:
        outcome = retry_state.outcome
        wait_ms = retry_state.next_action.sleep * 1000 if retry_state.next_action else 0.0
        attempt = retry_state.attempt_number
        if outcome is None or outcome.failed:
            logger.warning(
                "Transient error fetching id=%s (attempt %d/%d): %s. Retrying in %.0fms",
                asset_id,
                attempt,
                total_attempts,
                outcome.exception() if outcome is not None else "unknown",
                wait_ms,
            )
            return
        status_code = outcome.result().status_code
        if status_code == 429:
            logger.warning(
                "429 received for id=%s, waiting %.0fms before retry (%d/%d)",
                asset_id,
                wait_ms,
                attempt,
                total_attempts,
            )
        else:
            logger.warning(
                "HTTP %d fetching id=%s (attempt %d/%d). Retrying in %.0fms",
                status_code,
                asset_id,
                attempt,
                total_attempts,
                wait_ms,
            )

    return before_sleep


class AssetLookupClient:
    """Resolve asset ids to display names one request at a time.

    Each identifier gets its own attempt budget: ``retries`` extra attempts after
    the first one. HTTP 429 honours a numeric ``Retry-After`` header, other
    transient failures (request errors, 5xx) back off exponentially from
    ``base_delay_ms``, and every other 4xx fails immediately.
    """

    def __init__(
        self,
        client: httpx.Client | None = None,
        *,
        url_template: str = DEFAULT_LOOKUP_URL,
        retries: int = DEFAULT_RETRIES,
        base_delay_ms: float = DEFAULT_BASE_DELAY_MS,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if retries < 0:
            raise ValueError("retries must be >= 0")
        if base_delay_ms < 0:
            raise ValueError("base_delay_ms must be >= 0")
        self._owns_client = client is None
        self._client = client or httpx.Client(
            timeout=timeout, transport=transport, follow_redirects=True
        )
        self._url_template = url_template
        self._retries = retries
        self._base_delay_ms = base_delay_ms
        self._timeout = timeout
        self._sleep = sleep

    def __enter__(self) -> "AssetLookupClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def build_url(self, asset_id: str) -> str:
        return self._url_template.format(asset_id=asset_id)

    def resolve_name(
        self,
        asset_id: str,
        retries: Optional[int] = None,
        base_delay_ms: Optional[float] = None,
    ) -> Optional[str]:
        """Return the asset's display name, or ``None`` if it cannot be resolved."""

        return self.lookup(asset_id, retries=retries, base_delay_ms=base_delay_ms).name

    def _retrying(self, asset_id: str, budget: int, base_delay_ms: float) -> tenacity.Retrying:
        return tenacity.Retrying(
            stop=tenacity.stop_after_attempt(budget + 1),
            wait=WaitRetryAfter(base_delay_ms),
            retry=retry_if_exception_type(httpx.RequestError) | retry_if_result(is_transient_response),
            before_sleep=_log_retry(asset_id, budget + 1),
            sleep=self._sleep,
        )

    def lookup(
        self,
        asset_id: str,
        retries: Optional[int] = None,
        base_delay_ms: Optional[float] = None,
    ) -> LookupResult:
        budget = self._retries if retries is None else retries
        base_delay = self._base_delay_ms if base_delay_ms is None else base_delay_ms
        url = self.build_url(asset_id)
        attempts = 0

        def fetch() -> httpx.Response:
            nonlocal attempts
            attempts += 1
            return self._client.get(url, timeout=self._timeout)

        try:
            response = self._retrying(asset_id, budget, base_delay)(fetch)
        except tenacity.RetryError as exc:
            last = exc.last_attempt
            status_code = None if last.failed else last.result().status_code
            logger.error("Exceeded retries fetching id=%s", asset_id)
            return LookupResult(asset_id, None, LookupState.EXHAUSTED_RETRIES, attempts, status_code)

        status_code = response.status_code
        if not response.is_success:
            logger.error("Failed to fetch details for id=%s (status: %d)", asset_id, status_code)
            return LookupResult(asset_id, None, LookupState.FAILED_FAST, attempts, status_code)

        try:
            payload = response.json()
        except ValueError:
            logger.error("Invalid JSON in details response for id=%s", asset_id)
            return LookupResult(asset_id, None, LookupState.FAILED_FAST, attempts, status_code)
        name = extract_name(payload)
        if name is None:
            logger.error("Details response for id=%s carries no name", asset_id)
            return LookupResult(asset_id, None, LookupState.FAILED_FAST, attempts, status_code)
        return LookupResult(asset_id, name, LookupState.SUCCEEDED, attempts, status_code)
