from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from threading import Lock
from time import perf_counter, time
from typing import Deque, Dict, List, Tuple

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.routing import Match
from starlette.types import ASGIApp

from tabi.core.settings import settings


@dataclass
class RouteStats:
    """Aggregated statistics for a single HTTP route."""

    method: str
    path: str
    count: int = 0
    failures: int = 0
    total_ms: float = 0.0
    last_ms: float = 0.0
    last_status: int = 0
    durations: Deque[float] = field(default_factory=lambda: deque(maxlen=200))

    def add(self, duration_ms: float, status_code: int) -> None:
        self.count += 1
        if status_code >= 500:
            self.failures += 1
        self.total_ms += duration_ms
        self.last_ms = duration_ms
        self.last_status = status_code
        self.durations.append(duration_ms)


@dataclass
class RequestEvent:
    method: str
    path: str
    duration_ms: float
    status_code: int
    recorded_at: float


class MetricsRegistry:
    """Thread-safe in-memory store for per-route request metrics."""

    def __init__(self, max_events: int = 5000) -> None:
        self._routes: Dict[Tuple[str, str], RouteStats] = {}
        self._total_requests = 0
        self._events: Deque[RequestEvent] = deque(maxlen=max(max_events, 1))
        self._lock = Lock()

    def record(
        self,
        method: str,
        path: str,
        duration_ms: float,
        status_code: int,
    ) -> None:
        key = (method, path)
        with self._lock:
            route_stat = self._routes.get(key)
            if route_stat is None:
                route_stat = RouteStats(method=method, path=path)
                self._routes[key] = route_stat
            route_stat.add(duration_ms, status_code)
            self._total_requests += 1
            self._events.append(
                RequestEvent(
                    method=method,
                    path=path,
                    duration_ms=duration_ms,
                    status_code=status_code,
                    recorded_at=time(),
                )
            )

    def snapshot(self) -> dict:
        with self._lock:
            routes = [
                self._build_route_payload(
                    method=stats.method,
                    path=stats.path,
                    count=stats.count,
                    failures=stats.failures,
                    durations=list(stats.durations),
                    total_ms=stats.total_ms,
                )
                for stats in self._routes.values()
            ]
            total = self._total_requests
        routes.sort(key=lambda item: item["count"], reverse=True)
        return {"total_requests": total, "routes": routes}

    def snapshot_window(self, window_seconds: int) -> dict:
        if window_seconds <= 0:
            return self.snapshot()

        with self._lock:
            threshold = time() - window_seconds
            while self._events and self._events[0].recorded_at < threshold:
                self._events.popleft()
            events = list(self._events)

        grouped: Dict[Tuple[str, str], List[RequestEvent]] = {}
        for event in events:
            grouped.setdefault((event.method, event.path), []).append(event)
        routes = [
            self._build_route_payload(
                method=method,
                path=path,
                count=len(items),
                failures=sum(1 for item in items if item.status_code >= 500),
                durations=[item.duration_ms for item in items],
                total_ms=sum(item.duration_ms for item in items),
            )
            for (method, path), items in grouped.items()
        ]
        routes.sort(key=lambda item: item["count"], reverse=True)
        return {
            "total_requests": len(events),
            "routes": routes,
            "window_seconds": window_seconds,
        }

    def reset(self) -> None:
        with self._lock:
            self._routes.clear()
            self._events.clear()
            self._total_requests = 0

    def _build_route_payload(
        self,
        *,
        method: str,
        path: str,
        count: int,
        failures: int,
        durations: List[float],
        total_ms: float,
    ) -> dict:
        avg_ms = total_ms / count if count else 0.0
        p95 = self._percentile(durations, 0.95)
        return {
            "method": method,
            "path": path,
            "count": count,
            "failures": failures,
            "avg_ms": round(avg_ms, 3),
            "p95_ms": round(p95, 3) if p95 is not None else None,
        }

    @staticmethod
    def _percentile(values: List[float], percentile: float) -> float | None:
        if not values:
            return None
        ordered = sorted(values)
        k = (len(ordered) - 1) * percentile
        lower = int(k)
        upper = min(lower + 1, len(ordered) - 1)
        if lower == upper:
            return ordered[lower]
        frac = k - lower
        return ordered[lower] + (ordered[upper] - ordered[lower]) * frac


metrics_registry = MetricsRegistry(max_events=settings.metrics_max_events)


def _route_template(request: Request) -> str:
    """Collapse ``/api/activities/<id>`` style paths onto their route."""

    for route in request.app.router.routes:
        match, _ = route.matches(request.scope)
        if match == Match.FULL:
            return getattr(route, "path", request.url.path)
    return request.url.path


class APIMetricsMiddleware(BaseHTTPMiddleware):
    """Middleware that records request metrics for later inspection."""

    def __init__(self, app: ASGIApp, registry: MetricsRegistry | None = None) -> None:
        super().__init__(app)
        self._registry = registry or metrics_registry

    async def dispatch(self, request: Request, call_next) -> Response:
        start = perf_counter()
        response = await call_next(request)
        elapsed = (perf_counter() - start) * 1000
        self._registry.record(
            request.method,
            _route_template(request),
            elapsed,
            response.status_code,
        )
        return response


def get_metrics_registry() -> MetricsRegistry:
    return metrics_registry


def reset_metrics_registry() -> None:
    metrics_registry.reset()
