"""Prometheus metrics, one registry per app instance."""
import time

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Counter, Gauge, Histogram, generate_latest


class Metrics:
    content_type = CONTENT_TYPE_LATEST

    def __init__(self):
        self.registry = CollectorRegistry()
        self.started = time.monotonic()
        self.http_requests = Counter(
            "sensus_http_requests_total",
            "HTTP requests handled",
            ["method", "route", "status"],
            registry=self.registry,
        )
        self.http_latency = Histogram(
            "sensus_http_request_duration_seconds",
            "HTTP request latency",
            ["method", "route"],
            registry=self.registry,
        )
        self.security_events = Counter(
            "sensus_security_events_total",
            "Requests rejected by the request gate",
            ["kind"],
            registry=self.registry,
        )
        self.uptime = Gauge("sensus_uptime_seconds", "Process uptime", registry=self.registry)
        self.blocked_ips = Gauge("sensus_blocked_ips", "Currently blocked IPs", registry=self.registry)
        self.active_lockouts = Gauge("sensus_active_lockouts", "Login lockouts in force", registry=self.registry)
        self.active_rate_limits = Gauge(
            "sensus_active_rate_limits", "Clients over their rate limit", registry=self.registry
        )

    def uptime_seconds(self) -> float:
        return time.monotonic() - self.started

    def observe_request(self, method: str, route: str, status: int, duration: float) -> None:
        self.http_requests.labels(method=method, route=route, status=str(status)).inc()
        self.http_latency.labels(method=method, route=route).observe(duration)

    def security_event(self, kind: str) -> None:
        self.security_events.labels(kind=kind).inc()

    def render(self, gate_stats: dict) -> bytes:
        self.uptime.set(self.uptime_seconds())
        self.blocked_ips.set(gate_stats.get("blockedIPs", 0))
        self.active_lockouts.set(gate_stats.get("activeLockouts", 0))
        self.active_rate_limits.set(gate_stats.get("activeRateLimits", 0))
        return generate_latest(self.registry)
