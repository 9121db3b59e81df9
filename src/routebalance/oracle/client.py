"""
client.py

HTTP client for the NextBillion.ai Route Optimization API (v2).

Submissions are POSTed to ``/optimization/v2?key=...`` and results fetched
from ``/optimization/v2/result?id=...&key=...``.  Every HTTP call goes through
one rate gate and one retry loop:

* connection errors, timeouts, broken response bodies and 5xx responses are
  retried with a doubling delay up to ``max_retries`` attempts, then raised
  as ``OracleSubmissionError``;
* any other ``requests`` error (bad URL, redirect loop) raises
  ``OracleSubmissionError`` at once;
* 4xx responses raise ``OracleRejectedError`` immediately;
* a 2xx body that is not JSON raises ``OracleProcessingFailure``.
"""

from typing import Any

import requests

from routebalance.core_types import JobHandle, OracleStatus, ProblemInstance, RouteSolution
from routebalance.errors import (
    ErrorCategory,
    OracleProcessingFailure,
    OracleRejectedError,
    OracleSubmissionError,
)
from routebalance.interfaces import Clock
from routebalance.oracle.clock import RateGate, SystemClock
from routebalance.registry import register_oracle
from routebalance.utils.logging import RouteBalanceLogger, log_detail, log_warning

logger = RouteBalanceLogger.get_logger(__name__)

DEFAULT_BASE_URL = "https://api.nextbillion.io"
USER_AGENT = "routebalance/1.0"

_PROCESSING_STATUSES = {"in progress", "processing"}
_FAILED_STATUSES = {"error", "failed"}
_CANCELLED_STATUSES = {"cancelled", "canceled"}
_DONE_STATUSES = {"ok", "success", "completed"}

# Failures of the transport itself; anything else requests raises is a
# malformed request and is not retried.
_TRANSIENT_ERRORS = (
    requests.ConnectionError,
    requests.Timeout,
    requests.exceptions.ChunkedEncodingError,
    requests.exceptions.ContentDecodingError,
)


def _has_routes(payload: dict[str, Any]) -> bool:
    result = payload.get("result")
    if isinstance(result, dict) and result.get("routes"):
        return True
    return bool(payload.get("routes"))


def classify_response(payload: dict[str, Any]) -> OracleStatus:
    """Map a result document onto an ``OracleStatus``.

    Only the ``status`` field and the presence of a ``result`` are consulted;
    the free-text ``message`` never decides the outcome.  A finished status
    counts as completed once a ``result`` is present, even with zero routes,
    so that degenerate answers reach the controller instead of polling until
    the wait bound.  A finished status without a ``result`` is how the API
    reports a queued job (``"Job still processing"``), so it reads as
    processing, as does any unrecognised document.
    """
    status = str(payload.get("status") or "").strip().lower()

    if status in _PROCESSING_STATUSES:
        return OracleStatus.PROCESSING
    if status in _FAILED_STATUSES:
        return OracleStatus.FAILED
    if status in _CANCELLED_STATUSES:
        return OracleStatus.CANCELLED
    if _has_routes(payload):
        return OracleStatus.COMPLETED
    if status in _DONE_STATUSES and isinstance(payload.get("result"), dict):
        return OracleStatus.COMPLETED
    return OracleStatus.PROCESSING


@register_oracle("nextbillion")
class NextBillionOracle:
    """``Oracle`` implementation talking to the NextBillion.ai API."""

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        clock: Clock | None = None,
        min_call_interval: float = 1.0,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        request_timeout: float = 300.0,
        session: requests.Session | None = None,
    ):
        if not api_key:
            raise ValueError("A NextBillion API key is required.")
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1.")
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.clock = clock or SystemClock()
        self.gate = RateGate(min_call_interval, self.clock)
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.request_timeout = request_timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {"Content-Type": "application/json", "User-Agent": USER_AGENT}
        )
        self._responses: dict[str, dict[str, Any]] = {}

    # ------------------------------------------------------------------
    # HTTP plumbing
    # ------------------------------------------------------------------

    def _request(
        self,
        method: str,
        path: str,
        params: dict[str, str],
        payload: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        query = {**params, "key": self.api_key}
        delay = self.retry_delay
        last_error: OracleSubmissionError | None = None

        for attempt in range(1, self.max_retries + 1):
            self.gate.wait()
            try:
                response = self.session.request(
                    method,
                    url,
                    params=query,
                    json=payload,
                    timeout=self.request_timeout,
                )
            except _TRANSIENT_ERRORS as exc:
                last_error = OracleSubmissionError(
                    f"{method} {path} failed: {exc}", ErrorCategory.NETWORK
                )
            except requests.RequestException as exc:
                raise OracleSubmissionError(
                    f"{method} {path} could not be sent: {exc}", ErrorCategory.CLIENT
                ) from exc
            else:
                if 400 <= response.status_code < 500:
                    raise OracleRejectedError(
                        f"{method} {path} rejected with status {response.status_code}: {response.text}",
                        response.status_code,
                    )
                if response.status_code >= 500:
                    last_error = OracleSubmissionError(
                        f"{method} {path} failed with status {response.status_code}: {response.text}",
                        ErrorCategory.SERVER,
                        response.status_code,
                    )
                else:
                    try:
                        return response.json()
                    except ValueError as exc:
                        raise OracleProcessingFailure(
                            f"{method} {path} returned invalid JSON",
                            ErrorCategory.PROCESSING,
                            response.status_code,
                        ) from exc

            if attempt < self.max_retries:
                log_warning(
                    f"Retry attempt {attempt}/{self.max_retries} after {delay:g}s: {last_error}"
                )
                self.clock.sleep(delay)
                delay *= 2

        assert last_error is not None
        raise last_error

    # ------------------------------------------------------------------
    # Oracle protocol
    # ------------------------------------------------------------------

    def submit(self, instance: ProblemInstance) -> JobHandle:
        log_detail(
            f"Submitting {len(instance.vehicles)} vehicles, {len(instance.jobs)} jobs"
        )
        payload = self._request("POST", "/optimization/v2", {}, instance.to_dict())

        request_id = payload.get("request_id") or payload.get("requestId") or payload.get("id")
        if _has_routes(payload):
            logger.debug("Oracle answered synchronously")
            return JobHandle(
                request_id=str(request_id or ""),
                immediate_result=_parse_solution(payload, request_id),
            )
        if not request_id:
            raise OracleSubmissionError(
                "No request ID received from optimization submission",
                ErrorCategory.SERVER,
            )
        logger.debug(f"Submitted optimization request {request_id}")
        return JobHandle(request_id=str(request_id), message=str(payload.get("message") or ""))

    def poll_status(self, handle: JobHandle) -> OracleStatus:
        if handle.immediate_result is not None:
            return OracleStatus.COMPLETED
        payload = self._request(
            "GET", "/optimization/v2/result", {"id": handle.request_id}
        )
        status = classify_response(payload)
        if status is OracleStatus.COMPLETED:
            self._responses[handle.request_id] = payload
        elif status is not OracleStatus.PROCESSING:
            logger.debug(f"Request {handle.request_id}: {payload.get('message')}")
        return status

    def fetch_result(self, handle: JobHandle) -> RouteSolution:
        if handle.immediate_result is not None:
            return handle.immediate_result
        payload = self._responses.pop(handle.request_id, None)
        if payload is None:
            payload = self._request(
                "GET", "/optimization/v2/result", {"id": handle.request_id}
            )
        return _parse_solution(payload, handle.request_id)


def _parse_solution(payload: dict[str, Any], request_id: Any) -> RouteSolution:
    try:
        return RouteSolution.from_dict(payload)
    except ValueError as exc:
        raise OracleProcessingFailure(
            f"Malformed solution for request {request_id}: {exc}",
            ErrorCategory.PROCESSING,
        ) from exc
