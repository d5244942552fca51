"""
Live and durable statistics for one scan.

Simple counters are lock-backed integers that only ever go up. Compound
structures (bucket lists and maps) sit behind a single Statistics lock, and the
live-view buffer has a lock of its own. None of these locks is held across an
await.
"""
import asyncio, threading, time
from collections import defaultdict, deque
from datetime import datetime, timezone
from typing import Dict, List, Optional

from .classifier import DIRECT, OTHER, PROTECTED, REDIRECT, Verdict
from .models import ScanResult, WildcardBaseline

LIVE_BUFFER_SIZE = 100
SAMPLE_INTERVAL = 0.5


class AtomicCounter:
    def __init__(self, value: int = 0):
        self._value = value
        self._lock = threading.Lock()

    def add(self, n: int = 1) -> int:
        with self._lock:
            self._value += n
            return self._value

    def increment(self) -> int:
        return self.add(1)

    @property
    def value(self) -> int:
        with self._lock:
            return self._value


class LiveStats:
    def __init__(self, total: int = 0):
        self.total = AtomicCounter(total)
        self.completed = AtomicCounter()
        self.direct = AtomicCounter()
        self.redirects = AtomicCounter()
        self.protected = AtomicCounter()
        self.errors = AtomicCounter()
        self._speed = 0.0
        self._speed_lock = threading.Lock()
        self._end_lock = threading.Lock()
        self.start_time: Optional[datetime] = None
        self.end_time: Optional[datetime] = None
        self._started: Optional[float] = None

    def start(self) -> None:
        self.start_time = datetime.now(timezone.utc)
        self._started = time.monotonic()

    @property
    def active(self) -> bool:
        return self._started is not None

    def elapsed(self) -> float:
        if self._started is None:
            return 0.0
        return time.monotonic() - self._started

    def sample_speed(self) -> float:
        elapsed = self.elapsed()
        if elapsed <= 0:
            return self.speed
        speed = self.completed.value / elapsed
        with self._speed_lock:
            self._speed = speed
        return speed

    @property
    def speed(self) -> float:
        with self._speed_lock:
            return self._speed

    @property
    def finished(self) -> bool:
        return self.active and self.completed.value >= self.total.value

    def observe_completion(self) -> bool:
        """Record the end time the first time an observer sees the scan done."""
        if not self.finished:
            return False
        with self._end_lock:
            if self.end_time is None:
                self.end_time = datetime.now(timezone.utc)
        return True

    def snapshot(self) -> Dict:
        total = self.total.value
        completed = self.completed.value
        return {
            "total": total,
            "completed": completed,
            "progress": (completed / total) if total else 0.0,
            "direct": self.direct.value,
            "redirects": self.redirects.value,
            "protected": self.protected.value,
            "errors": self.errors.value,
            "speed": round(self.speed, 2),
            "elapsed": round(self.elapsed(), 3),
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "end_time": self.end_time.isoformat() if self.end_time else None,
        }


class Statistics:
    def __init__(self):
        self.lock = threading.Lock()
        self.total_scanned = 0
        self.direct: List[ScanResult] = []
        self.redirects: List[ScanResult] = []
        self.other: List[ScanResult] = []
        self.redirect_targets: Dict[str, int] = defaultdict(int)
        self.content_hashes: Dict[str, List[ScanResult]] = defaultdict(list)

    def record(self, result: ScanResult, verdict: Verdict) -> None:
        with self.lock:
            self.total_scanned += 1
            if DIRECT in verdict.buckets:
                self.direct.append(result)
            if REDIRECT in verdict.buckets:
                self.redirects.append(result)
                self.redirect_targets[result.final_url] += 1
            if OTHER in verdict.buckets:
                self.other.append(result)
            self.content_hashes[result.content_hash].append(result)

    def findings(self) -> List[ScanResult]:
        """Point-in-time copy of every bucketed result, each listed once."""
        with self.lock:
            merged = self.direct + self.redirects + self.other
        seen = set()
        out = []
        for r in merged:
            if id(r) not in seen:
                seen.add(id(r))
                out.append(r)
        return out

    def snapshot(self) -> Dict:
        with self.lock:
            return {
                "total_scanned": self.total_scanned,
                "direct": len(self.direct),
                "redirects": len(self.redirects),
                "other": len(self.other),
                "redirect_targets": dict(self.redirect_targets),
                "duplicate_hashes": {
                    h: len(rs) for h, rs in self.content_hashes.items() if len(rs) > 1
                },
            }


class LiveBuffer:
    def __init__(self, capacity: int = LIVE_BUFFER_SIZE):
        self._items = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def append(self, result: ScanResult) -> None:
        with self._lock:
            self._items.append(result)

    def snapshot(self) -> List[ScanResult]:
        with self._lock:
            return list(self._items)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


class ScanSession:
    """Everything one scan writes to. Replaced wholesale by the next scan."""

    def __init__(self, total: int = 0):
        self.live = LiveStats(total)
        self.stats = Statistics()
        self.recent = LiveBuffer()
        self.cancelled = asyncio.Event()
        self.baseline: Optional[WildcardBaseline] = None

    def record(self, result: ScanResult, verdict: Verdict) -> None:
        self.stats.record(result, verdict)
        if DIRECT in verdict.buckets:
            self.live.direct.increment()
        if REDIRECT in verdict.buckets:
            self.live.redirects.increment()
        if PROTECTED in verdict.buckets:
            self.live.protected.increment()
        self.recent.append(result)
