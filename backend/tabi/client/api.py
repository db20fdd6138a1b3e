from __future__ import annotations

from time import perf_counter
from typing import Any, Iterable, Mapping

import httpx
from fastapi import FastAPI
from httpx import ASGITransport

from tabi.core.logging import get_logger
from tabi.core.settings import settings
from tabi.services.ordering import OrderAssignment

logger = get_logger(__name__)


class PlannerApiError(Exception):
    """Any failed call: transport error or non-2xx status.

    The API reports every failure with the same generic ``{error}`` body, so
    callers can only tell *that* something failed, never which row caused it.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        method: str | None = None,
        path: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.method = method
        self.path = path


class PlannerApiClient:
    """Async JSON client for the planner HTTP API.

    Pass ``app`` to talk to an in-process FastAPI application through
    ``ASGITransport`` (tests, scripts); otherwise ``base_url`` is used.
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        app: FastAPI | None = None,
        timeout_s: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if client is None:
            client_kwargs: dict[str, Any] = {
                "timeout": httpx.Timeout(timeout_s or settings.api_timeout_s),
                "base_url": (base_url or settings.api_base_url).rstrip("/"),
            }
            if app is not None:
                client_kwargs["transport"] = ASGITransport(app=app)
                client_kwargs["base_url"] = (
                    base_url or "http://testserver"
                ).rstrip("/")
            client = httpx.AsyncClient(**client_kwargs)
        self._client = client

    async def __aenter__(self) -> "PlannerApiClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json_body: Any = None,
        params: Mapping[str, Any] | None = None,
    ) -> Any:
        start = perf_counter()
        try:
            response = await self._client.request(
                method, path, json=json_body, params=params or None
            )
        except httpx.RequestError as exc:
            logger.warning(
                "api.transport_error",
                extra={"method": method, "path": path, "error": str(exc)},
            )
            raise PlannerApiError(str(exc), method=method, path=path) from exc

        duration_ms = round((perf_counter() - start) * 1000, 3)
        if not response.is_success:
            message = _error_message(response)
            logger.warning(
                "api.request_failed",
                extra={
                    "method": method,
                    "path": path,
                    "status_code": response.status_code,
                    "duration_ms": duration_ms,
                    "error": message,
                },
            )
            raise PlannerApiError(
                message,
                status_code=response.status_code,
                method=method,
                path=path,
            )
        logger.debug(
            "api.request_ok",
            extra={"method": method, "path": path, "duration_ms": duration_ms},
        )
        return response.json()

    async def list_trips(self) -> list[dict[str, Any]]:
        return await self._request("GET", "/api/trips")

    async def get_trip(self, trip_id: str) -> dict[str, Any]:
        return await self._request("GET", f"/api/trips/{trip_id}")

    async def create_trip(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        return await self._request("POST", "/api/trips", json_body=dict(payload))

    async def create_day(
        self, trip_id: str, payload: Mapping[str, Any]
    ) -> dict[str, Any]:
        return await self._request(
            "POST", f"/api/trips/{trip_id}/days", json_body=dict(payload)
        )

    async def create_activity(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        return await self._request("POST", "/api/activities", json_body=dict(payload))

    async def update_activity(
        self, activity_id: str, payload: Mapping[str, Any]
    ) -> dict[str, Any]:
        return await self._request(
            "PUT", f"/api/activities/{activity_id}", json_body=dict(payload)
        )

    async def delete_activity(self, activity_id: str) -> None:
        await self._request("DELETE", f"/api/activities/{activity_id}")

    async def reorder_activities(self, changes: Iterable[OrderAssignment]) -> None:
        body = {"activities": [change.as_payload() for change in changes]}
        await self._request("PUT", "/api/activities/reorder", json_body=body)

    async def get_budget(self, trip_id: str | None = None) -> dict[str, Any]:
        params = {"tripId": trip_id} if trip_id else None
        return await self._request("GET", "/api/budget", params=params)


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    if isinstance(body, dict) and isinstance(body.get("error"), str):
        return body["error"]
    return f"HTTP {response.status_code}"
