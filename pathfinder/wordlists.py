import logging
from pathlib import Path
from typing import Iterable, List, Optional, Union

from .errors import WordlistError

log = logging.getLogger("pathfinder.wordlists")


def iter_candidates(lines: Iterable[str], cap: Optional[int] = None) -> List[str]:
    """
    Normalize raw wordlist lines into candidate paths.
    Blank lines and '#' comments are skipped, duplicates dropped, order kept.
    """
    seen = set()
    out: List[str] = []
    dropped = 0
    for line in lines:
        if isinstance(line, (bytes, bytearray)):
            line = line.decode("utf-8", "ignore")
        s = str(line).strip()
        if not s or s.startswith("#") or s in seen:
            continue
        seen.add(s)
        if cap is not None and len(out) >= cap:
            dropped += 1
            continue
        out.append(s)
    if dropped:
        log.warning("Wordlist capped at %d entries, %d more dropped", cap, dropped)
    return out


def load_wordlist(path: Union[str, Path], cap: Optional[int] = None) -> List[str]:
    p = Path(path)
    try:
        with p.open("r", encoding="utf-8", errors="ignore") as f:
            return iter_candidates(f, cap)
    except OSError as e:
        raise WordlistError(f"cannot read wordlist {p}: {e.strerror or e}") from e


def expand_extensions(paths: Iterable[str], extensions: Iterable[str]) -> List[str]:
    """Each path, followed by one variant per extension ('php' and '.php' both work)."""
    exts = [e if e.startswith(".") else "." + e for e in (x.strip() for x in extensions) if e]
    if not exts:
        return list(paths)
    out: List[str] = []
    for p in paths:
        out.append(p)
        base = p.rstrip("/") or p
        for ext in exts:
            out.append(base + ext)
    return out
