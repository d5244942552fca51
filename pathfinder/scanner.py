import asyncio, contextlib, logging, random, string
from typing import Callable, Iterable, List, Optional
from urllib.parse import urlparse

import aiohttp

from .classifier import classify
from .errors import FetchError, InvalidTargetError
from .fetcher import create_session, fetch
from .models import ScanConfig, ScanResult, WildcardBaseline
from .stats import SAMPLE_INTERVAL, LiveBuffer, LiveStats, ScanSession, Statistics
from .wordlists import expand_extensions

log = logging.getLogger("pathfinder.scanner")

SessionFactory = Callable[[ScanConfig], aiohttp.ClientSession]


def _rand_token(n: int = 32, alphabet: str = string.ascii_lowercase + string.digits) -> str:
    return "".join(random.choice(alphabet) for _ in range(n))


def probe_paths() -> List[str]:
    """Three paths no sane server hosts."""
    return [
        _rand_token(32),
        "this-path-never-exists-" + _rand_token(16),
        "__test__" + str(random.randint(100000, 999999)),
    ]


def validate_target(base: str) -> str:
    base = str(base or "").strip()
    parsed = urlparse(base)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InvalidTargetError(f"invalid target URL: {base!r}")
    return base.rstrip("/")


def build_target(base: str, path: str) -> str:
    return base.rstrip("/") + "/" + path.lstrip("/")


def wildcard_baseline(probes: Iterable[ScanResult]) -> Optional[WildcardBaseline]:
    hits = [p for p in probes if p.status == 200]
    if not hits:
        return None
    first = hits[0]
    if any(h.content_hash != first.content_hash for h in hits):
        return None
    return WildcardBaseline(
        content_hash=first.content_hash,
        content_length=first.content_length,
        status=200,
    )


class RateLimiter:
    """Steady ticker: the first tick fires one interval after creation."""

    def __init__(self, rate: int):
        self.interval = 1.0 / rate
        self._next: Optional[float] = None

    async def wait(self) -> None:
        now = asyncio.get_running_loop().time()
        if self._next is None:
            self._next = now + self.interval
        tick = max(self._next, now)
        self._next = tick + self.interval
        await asyncio.sleep(tick - now)


class Scanner:
    def __init__(
        self,
        base: str,
        config: Optional[ScanConfig] = None,
        session_factory: SessionFactory = create_session,
    ):
        self.base = validate_target(base)
        self.config = config or ScanConfig()
        self.session_factory = session_factory
        self.session = ScanSession()

    @property
    def live(self) -> LiveStats:
        return self.session.live

    @property
    def stats(self) -> Statistics:
        return self.session.stats

    @property
    def recent(self) -> LiveBuffer:
        return self.session.recent

    @property
    def baseline(self) -> Optional[WildcardBaseline]:
        return self.session.baseline

    def recent_results(self) -> List[ScanResult]:
        return self.session.recent.snapshot()

    def cancel(self) -> None:
        """Stop launching new requests. Requests already on the wire finish."""
        self.session.cancelled.set()

    async def _throttle(self, limiter: Optional[RateLimiter]) -> None:
        if limiter is not None:
            await limiter.wait()
        if self.config.delay:
            await asyncio.sleep(self.config.delay / 1000)

    async def detect_wildcard(
        self, http: aiohttp.ClientSession, limiter: Optional[RateLimiter] = None
    ) -> Optional[WildcardBaseline]:
        probes: List[ScanResult] = []
        for p in probe_paths():
            await self._throttle(limiter)
            try:
                probes.append(await fetch(http, build_target(self.base, p), self.config, path="/" + p))
            except FetchError as e:
                log.debug("Wildcard probe failed: %s", e)
        return wildcard_baseline(probes)

    async def _scan_one(
        self,
        http: aiohttp.ClientSession,
        session: ScanSession,
        sem: asyncio.Semaphore,
        limiter: Optional[RateLimiter],
        path: str,
        found: List[ScanResult],
    ) -> None:
        try:
            if session.cancelled.is_set():
                return
            await self._throttle(limiter)
            if session.cancelled.is_set():
                return
            result = await fetch(
                http, build_target(self.base, path), self.config, path="/" + path.lstrip("/")
            )
            verdict = classify(result, session.baseline, self.config)
            if verdict.accepted:
                session.record(result, verdict)
                found.append(result)
        except FetchError as e:
            session.live.errors.increment()
            log.debug("Fetch failed: %s", e)
        except Exception:
            session.live.errors.increment()
            log.exception("Unexpected error scanning %s", path)
        finally:
            sem.release()
            session.live.completed.increment()

    async def _sample_speed(self, live: LiveStats) -> None:
        while True:
            await asyncio.sleep(SAMPLE_INTERVAL)
            live.sample_speed()

    def prepare(self, paths: Iterable[str]) -> List[str]:
        """Expand extensions and install a fresh session sized for the result."""
        candidates = expand_extensions(paths, self.config.extensions)
        self.session = ScanSession(total=len(candidates))
        return candidates

    def start(self, paths: Iterable[str]) -> "asyncio.Task[List[ScanResult]]":
        """Submit a scan in the background. The new session is live immediately."""
        candidates = self.prepare(paths)
        return asyncio.create_task(self._run(self.session, candidates))

    async def run_scan(self, paths: Iterable[str]) -> List[ScanResult]:
        """Scan every path (plus its extension variants) and return accepted results.

        Each call works on a fresh ScanSession; per-path failures only bump the
        error counter.
        """
        candidates = self.prepare(paths)
        return await self._run(self.session, candidates)

    async def _run(self, session: ScanSession, candidates: List[str]) -> List[ScanResult]:
        limiter = RateLimiter(self.config.rate_limit) if self.config.rate_limit > 0 else None
        found: List[ScanResult] = []

        session.live.start()
        log.info(
            "Scan started: target=%s paths=%d concurrency=%d rate=%s",
            self.base, len(candidates), self.config.concurrency, self.config.rate_limit or "unlimited",
        )
        sampler = asyncio.create_task(self._sample_speed(session.live))
        try:
            async with self.session_factory(self.config) as http:
                session.baseline = await self.detect_wildcard(http, limiter)
                if session.baseline:
                    log.info(
                        "Wildcard responses detected: hash=%s length=%d",
                        session.baseline.content_hash, session.baseline.content_length,
                    )

                sem = asyncio.Semaphore(self.config.concurrency)
                tasks = []
                for i, path in enumerate(candidates):
                    if session.cancelled.is_set():
                        skipped = len(candidates) - i
                        session.live.completed.add(skipped)
                        log.info("Scan cancelled, %d paths not dispatched", skipped)
                        break
                    await sem.acquire()
                    tasks.append(asyncio.create_task(
                        self._scan_one(http, session, sem, limiter, path, found)
                    ))
                await asyncio.gather(*tasks)
        finally:
            sampler.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sampler
            session.live.sample_speed()

        log.info(
            "Scan finished: completed=%d accepted=%d errors=%d",
            session.live.completed.value, len(found), session.live.errors.value,
        )
        return found
