"""Request gate state: IP blocks, rate limits, login lockouts, attack patterns.

Counters live in process memory and are owned by one app instance.
The pattern scan is a heuristic extra layer; queries are always parameterised.
"""
import logging
import re
import time
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger("sensus.gate")

ATTACK_PATTERNS = [
    re.compile(r"<script", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"on\w+\s*=", re.IGNORECASE),
    re.compile(r"union\s+select", re.IGNORECASE),
    re.compile(r"drop\s+table", re.IGNORECASE),
    re.compile(r"insert\s+into", re.IGNORECASE),
    re.compile(r"delete\s+from", re.IGNORECASE),
    re.compile(r"update\s+set", re.IGNORECASE),
    re.compile(r"exec\s*\(", re.IGNORECASE),
    re.compile(r"eval\s*\(", re.IGNORECASE),
    re.compile(r"alert\s*\(", re.IGNORECASE),
    re.compile(r"document\.cookie", re.IGNORECASE),
    re.compile(r"window\.location", re.IGNORECASE),
]

HACKING_TOOL_AGENTS = re.compile(r"sqlmap|nmap|nikto|burp", re.IGNORECASE)

SANITIZE_PATTERNS = [
    re.compile(r"[<>]"),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"on\w+\s*=", re.IGNORECASE),
]


def find_attack_pattern(value: str) -> str | None:
    """Return the first attack pattern matching value, if any."""
    for pattern in ATTACK_PATTERNS:
        if pattern.search(value):
            return pattern.pattern
    return None


def scan_payload(payload) -> str | None:
    """Walk a decoded JSON payload and return the first matching pattern."""
    if isinstance(payload, str):
        return find_attack_pattern(payload)
    if isinstance(payload, dict):
        items = list(payload.keys()) + list(payload.values())
    elif isinstance(payload, (list, tuple)):
        items = payload
    else:
        return None
    for item in items:
        found = scan_payload(item)
        if found:
            return found
    return None


def is_hacking_tool(user_agent: str | None) -> bool:
    return bool(user_agent and HACKING_TOOL_AGENTS.search(user_agent))


def sanitize_text(value: str) -> str:
    """Trim and strip markup-ish fragments from free text."""
    for pattern in SANITIZE_PATTERNS:
        value = pattern.sub("", value)
    return value.strip()


@dataclass
class Window:
    started: float
    count: int = 0


class Sweeper:
    """Drops expired entries from a dict at most once per interval."""

    def __init__(self, interval: float, clock: Callable[[], float]):
        self.interval = interval
        self.clock = clock
        self.last = clock()

    def due(self, now: float) -> bool:
        if now - self.last < self.interval:
            return False
        self.last = now
        return True


class RateLimiter:
    """Fixed windows per IP: one global window plus one per matching endpoint override.

    A request must fit in every window it counts against.
    """

    def __init__(
        self,
        window_seconds: int,
        max_requests: int,
        endpoint_limits: dict[str, int] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self.endpoint_limits = {k.rstrip("/") or "/": v for k, v in (endpoint_limits or {}).items()}
        self.clock = clock
        self.sweeper = Sweeper(window_seconds, clock)
        # (ip, None) is the global window; (ip, endpoint) an override window
        self._windows: dict[tuple[str, str | None], Window] = {}

    def endpoint_for(self, path: str) -> str | None:
        """Most specific configured endpoint covering path, if any."""
        path = path.rstrip("/") or "/"
        matches = [e for e in self.endpoint_limits if path == e or path.startswith(e.rstrip("/") + "/")]
        return max(matches, key=len) if matches else None

    def limit_for(self, endpoint: str | None) -> int:
        if endpoint is None:
            return self.max_requests
        return self.endpoint_limits[endpoint]

    def _expired(self, window: Window, now: float) -> bool:
        return now - window.started >= self.window_seconds

    def _count(self, key: tuple[str, str | None], now: float) -> Window:
        window = self._windows.get(key)
        if window is None or self._expired(window, now):
            window = Window(started=now)
            self._windows[key] = window
        window.count += 1
        return window

    def sweep(self, now: float | None = None) -> None:
        now = self.clock() if now is None else now
        for key in [k for k, w in self._windows.items() if self._expired(w, now)]:
            del self._windows[key]

    def hit(self, ip: str, path: str) -> float | None:
        """Count one request. Returns seconds to wait when over a limit, else None."""
        now = self.clock()
        if self.sweeper.due(now):
            self.sweep(now)
        keys = [(ip, None)]
        endpoint = self.endpoint_for(path)
        if endpoint is not None:
            keys.append((ip, endpoint))
        waits = []
        for key in keys:
            window = self._count(key, now)
            if window.count > self.limit_for(key[1]):
                waits.append(self.window_seconds - (now - window.started))
        return max(waits) if waits else None

    def active_count(self) -> int:
        """Windows currently over their limit."""
        now = self.clock()
        return sum(
            1
            for (_, endpoint), w in self._windows.items()
            if not self._expired(w, now) and w.count > self.limit_for(endpoint)
        )

    def tracked_count(self) -> int:
        return len(self._windows)


class LoginAttemptTracker:
    """Failed logins per (ip, email); locks out after max_attempts."""

    def __init__(
        self,
        max_attempts: int,
        window_seconds: int,
        lockout_seconds: int,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self.lockout_seconds = lockout_seconds
        self.clock = clock
        self.sweeper = Sweeper(min(window_seconds, lockout_seconds), clock)
        self._attempts: dict[tuple[str, str], Window] = {}
        self._locked_until: dict[tuple[str, str], float] = {}

    def locked_for(self, ip: str, email: str) -> float | None:
        """Seconds left on a lockout, or None."""
        key = (ip, email)
        until = self._locked_until.get(key)
        if until is None:
            return None
        remaining = until - self.clock()
        if remaining <= 0:
            del self._locked_until[key]
            return None
        return remaining

    def sweep(self, now: float | None = None) -> None:
        now = self.clock() if now is None else now
        for key in [k for k, w in self._attempts.items() if now - w.started >= self.window_seconds]:
            del self._attempts[key]
        for key in [k for k, until in self._locked_until.items() if until <= now]:
            del self._locked_until[key]

    def record_failure(self, ip: str, email: str) -> bool:
        """Count a failed login. Returns True when this failure triggers a lockout."""
        key = (ip, email)
        now = self.clock()
        if self.sweeper.due(now):
            self.sweep(now)
        window = self._attempts.get(key)
        if window is None or now - window.started >= self.window_seconds:
            window = Window(started=now)
            self._attempts[key] = window
        window.count += 1
        if window.count >= self.max_attempts:
            self._locked_until[key] = now + self.lockout_seconds
            del self._attempts[key]
            logger.warning("Login locked out for %s %s after %d failures", ip, email, window.count)
            return True
        return False

    def reset(self, ip: str, email: str) -> None:
        key = (ip, email)
        self._attempts.pop(key, None)
        self._locked_until.pop(key, None)

    def lockout_count(self) -> int:
        now = self.clock()
        return sum(1 for until in self._locked_until.values() if until > now)

    def tracked_count(self) -> int:
        return len(self._attempts) + len(self._locked_until)


class IPBlocklist:
    """Permanently configured IPs plus temporary blocks."""

    def __init__(self, blocked: list[str] | None = None, clock: Callable[[], float] = time.monotonic):
        self.permanent = set(blocked or [])
        self.clock = clock
        self._temporary: dict[str, float] = {}

    def is_blocked(self, ip: str) -> bool:
        if ip in self.permanent:
            return True
        until = self._temporary.get(ip)
        if until is None:
            return False
        if until <= self.clock():
            del self._temporary[ip]
            return False
        return True

    def block(self, ip: str, seconds: int) -> None:
        now = self.clock()
        for expired in [k for k, until in self._temporary.items() if until <= now]:
            del self._temporary[expired]
        self._temporary[ip] = now + seconds
        logger.warning("Blocked IP %s for %ds", ip, seconds)

    def blocked_count(self) -> int:
        now = self.clock()
        return len(self.permanent) + sum(1 for until in self._temporary.values() if until > now)

    def tracked_count(self) -> int:
        return len(self._temporary)


class RequestGate:
    """Per-app bundle of gate state built from settings."""

    def __init__(self, settings, clock: Callable[[], float] = time.monotonic):
        self.settings = settings
        self.rate_limiter = RateLimiter(
            settings.rate_limit_window_seconds,
            settings.rate_limit_max_requests,
            settings.rate_limit_endpoint_limits,
            clock=clock,
        )
        self.login_attempts = LoginAttemptTracker(
            settings.max_login_attempts,
            settings.rate_limit_window_seconds,
            settings.lockout_duration_seconds,
            clock=clock,
        )
        self.blocklist = IPBlocklist(settings.blocked_ips, clock=clock)

    def stats(self) -> dict:
        return {
            "blockedIPs": self.blocklist.blocked_count(),
            "activeLockouts": self.login_attempts.lockout_count(),
            "activeRateLimits": self.rate_limiter.active_count(),
        }
