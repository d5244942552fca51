from typing import FrozenSet, NamedTuple, Optional

from .models import ScanConfig, ScanResult, WildcardBaseline

DIRECT = "direct"
REDIRECT = "redirect"
PROTECTED = "protected"
OTHER = "other"

PROTECTED_CODES = (401, 403)


class Verdict(NamedTuple):
    accepted: bool
    reason: str = ""
    buckets: FrozenSet[str] = frozenset()


def is_wildcard(result: ScanResult, baseline: Optional[WildcardBaseline]) -> bool:
    if baseline is None:
        return False
    return result.status == 200 and result.content_hash == baseline.content_hash


def filter_reason(result: ScanResult, config: ScanConfig) -> str:
    """Name of the user filter that drops ``result``, or "" if none does."""
    if config.match_status and result.status not in config.match_status:
        return "unmatched"
    if result.status in config.exclude_status:
        return "excluded-status"
    if result.content_length in config.exclude_sizes:
        return "excluded-size"
    return ""


def buckets_for(result: ScanResult) -> FrozenSet[str]:
    buckets = set()
    if result.is_direct_success:
        buckets.add(DIRECT)
    elif result.redirect_chain:
        buckets.add(REDIRECT)
    if result.status in PROTECTED_CODES:
        buckets.add(PROTECTED)
    if result.status in PROTECTED_CODES or result.status >= 500:
        buckets.add(OTHER)
    return frozenset(buckets)


def classify(
    result: ScanResult,
    baseline: Optional[WildcardBaseline],
    config: ScanConfig,
) -> Verdict:
    # wildcard noise wins over every user filter
    if is_wildcard(result, baseline):
        return Verdict(False, "wildcard")
    reason = filter_reason(result, config)
    if reason:
        return Verdict(False, reason)
    return Verdict(True, "", buckets_for(result))
