"""REST implementation of the Remote Sync Client (httpx)."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar

import httpx

from catalogsync.auth import AuthInfo
from catalogsync.errors import (
    CatalogSyncError,
    HttpErrorInfo,
    InvalidArgumentError,
    NetworkError,
    RequestTimeoutError,
    ServerError,
    TransientError,
    map_http_error,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 2
    initial_delay_sec: float = 0.5

    def call_budget(self, attempt_timeout: float) -> float:
        """Worst-case wall time of one call: every attempt timing out plus all backoff sleeps."""
        attempts = self.max_retries + 1
        backoff = self.initial_delay_sec * (2**self.max_retries - 1)
        return attempts * attempt_timeout + backoff


class RestSyncClient:
    """
    JSON-over-HTTP client for one backend.

    Notes:
        - Transient failures (network, timeout, 408/429/5xx) are retried with
          exponential backoff before being raised.
        - 401/403 raise AuthError and are never retried.
    """

    def __init__(
        self,
        base_url: str,
        *,
        auth_info: Optional[AuthInfo] = None,
        timeout: float = 10.0,
        retry_policy: Optional[RetryPolicy] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not base_url or not isinstance(base_url, str):
            raise InvalidArgumentError("base_url must be a non-empty string")

        self._auth_info = auth_info
        self._retry_policy = retry_policy or RetryPolicy()
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json", "Accept": "application/json"},
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> RestSyncClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # ----------------------------
    # RemoteSyncClient API
    # ----------------------------
    async def create(
        self,
        collection: str,
        payload: dict[str, Any],
        *,
        idempotency_key: Optional[str] = None,
    ) -> dict[str, Any]:
        headers = {"Idempotency-Key": idempotency_key} if idempotency_key else None
        data = await self._request("POST", f"/{collection}", json=payload, headers=headers)
        return _unwrap_entity(data)

    async def update(
        self,
        collection: str,
        entity_id: str,
        payload: dict[str, Any],
    ) -> dict[str, Any]:
        data = await self._request("PUT", f"/{collection}/{entity_id}", json=payload)
        return _unwrap_entity(data)

    async def delete(self, collection: str, entity_id: str) -> None:
        await self._request("DELETE", f"/{collection}/{entity_id}")

    async def list(self, collection: str) -> list[dict[str, Any]]:
        data = await self._request("GET", f"/{collection}")
        if isinstance(data, dict) and isinstance(data.get("data"), list):
            data = data["data"]
        if not isinstance(data, list):
            raise ServerError(
                "Unexpected list response shape",
                details={"collection": collection},
            )
        return [item for item in data if isinstance(item, dict)]

    # ----------------------------
    # Internals
    # ----------------------------
    async def _request(
        self,
        method: str,
        url: str,
        *,
        json: Any = None,
        headers: Optional[dict[str, str]] = None,
    ) -> Any:
        async def send() -> Any:
            request_headers = dict(headers or {})
            if self._auth_info is not None:
                request_headers.update(self._auth_info.headers())
            response = await self._client.request(
                method,
                url,
                json=json,
                headers=request_headers,
            )
            response.raise_for_status()
            if response.status_code == 204 or not response.content:
                return None
            return response.json()

        return await self._execute(send, method=method, url=url)

    async def _execute(
        self,
        func: Callable[[], Awaitable[T]],
        *,
        method: str,
        url: str,
    ) -> T:
        delay = self._retry_policy.initial_delay_sec
        for attempt in range(self._retry_policy.max_retries + 1):
            try:
                return await func()
            except Exception as exc:
                mapped = _map_exception(exc)
                if isinstance(mapped, TransientError) and attempt < self._retry_policy.max_retries:
                    logger.debug(
                        "%s %s failed (%s), retrying in %.2fs",
                        method,
                        url,
                        mapped.__class__.__name__,
                        delay,
                    )
                    await asyncio.sleep(delay)
                    delay *= 2
                    continue
                raise mapped from exc

        raise ServerError("Unexpected retry loop termination")


def _map_exception(exc: Exception) -> CatalogSyncError:
    if isinstance(exc, CatalogSyncError):
        return exc
    if isinstance(exc, httpx.HTTPStatusError):
        return map_http_error(_http_error_to_info(exc.response), cause=exc)
    if isinstance(exc, httpx.TimeoutException):
        return RequestTimeoutError("Request timed out", cause=exc)
    if isinstance(exc, httpx.RequestError):
        return NetworkError("Network error", cause=exc)
    if isinstance(exc, ValueError):
        # Undecodable JSON body from a 2xx response.
        return ServerError("Invalid JSON in response", cause=exc)
    return NetworkError("Transport error", cause=exc)


def _http_error_to_info(response: httpx.Response) -> HttpErrorInfo:
    message = None
    details: dict[str, Any] = {}
    try:
        payload = response.json()
    except ValueError:
        payload = None

    if isinstance(payload, dict):
        # The backend reports errors as {"mensaje": ...}; accept "message" too.
        raw = payload.get("mensaje") or payload.get("message") or payload.get("error")
        if isinstance(raw, str):
            message = raw
        errors = payload.get("errors")
        if errors:
            details["errors"] = errors

    return HttpErrorInfo(
        status_code=response.status_code,
        reason=response.reason_phrase or None,
        message=message,
        details=details or None,
    )


def _unwrap_entity(data: Any) -> dict[str, Any]:
    if isinstance(data, dict) and isinstance(data.get("data"), dict):
        data = data["data"]
    if not isinstance(data, dict):
        raise ServerError("Unexpected entity response shape")
    return data
