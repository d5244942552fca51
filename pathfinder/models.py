from datetime import datetime, timezone
from typing import Dict, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, computed_field, field_validator

MAX_REDIRECTS = 10
USER_AGENT = "PathFinder/1.0 (Security Research)"
DEFAULT_CONCURRENCY = 50
DEFAULT_TIMEOUT = 10


class ScanConfig(BaseModel):
    """Immutable per-scan parameters."""
    model_config = ConfigDict(frozen=True)

    match_status: Tuple[int, ...] = ()
    exclude_status: Tuple[int, ...] = ()
    exclude_sizes: Tuple[int, ...] = ()
    extensions: Tuple[str, ...] = ()
    headers: Tuple[Tuple[str, str], ...] = ()
    cookie: str = ""
    method: str = "GET"
    rate_limit: int = Field(default=0, ge=0)
    delay: int = Field(default=0, ge=0)  # milliseconds
    concurrency: int = Field(default=DEFAULT_CONCURRENCY, gt=0)
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)

    @field_validator("method")
    @classmethod
    def _upper_method(cls, v: str) -> str:
        return (v or "GET").strip().upper()

    @field_validator("headers", mode="before")
    @classmethod
    def _freeze_headers(cls, v):
        if isinstance(v, Mapping):
            return tuple((str(k), str(val)) for k, val in v.items())
        return v


class ScanRequest(BaseModel):
    url: HttpUrl
    paths: Optional[List[str]] = None
    wordlist: Optional[str] = None
    max_paths: int = 50000  # safety cap
    concurrency: int = Field(default=DEFAULT_CONCURRENCY, gt=0)
    timeout_seconds: float = Field(default=DEFAULT_TIMEOUT, gt=0)
    method: str = "GET"
    rate_limit: int = Field(default=0, ge=0)
    delay_ms: int = Field(default=0, ge=0)
    match_status: List[int] = []
    exclude_status: List[int] = []
    exclude_sizes: List[int] = []
    extensions: List[str] = []
    headers: Dict[str, str] = {}
    cookie: str = ""

    def to_config(self) -> ScanConfig:
        return ScanConfig(
            match_status=tuple(self.match_status),
            exclude_status=tuple(self.exclude_status),
            exclude_sizes=tuple(self.exclude_sizes),
            extensions=tuple(self.extensions),
            headers=self.headers,
            cookie=self.cookie,
            method=self.method,
            rate_limit=self.rate_limit,
            delay=self.delay_ms,
            concurrency=self.concurrency,
            timeout=self.timeout_seconds,
        )


class RedirectHop(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str
    status: int


class ScanResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    url: str
    status: int
    final_url: str
    redirect_chain: Tuple[RedirectHop, ...] = ()
    content_length: int = 0
    content_hash: str
    response_time: float = 0.0  # seconds
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @computed_field
    @property
    def is_direct_success(self) -> bool:
        return not self.redirect_chain and self.status == 200


class WildcardBaseline(BaseModel):
    model_config = ConfigDict(frozen=True)

    content_hash: str
    content_length: int
    status: int = 200
