class PathFinderError(Exception):
    pass


class InvalidTargetError(PathFinderError, ValueError):
    """Base URL is not an absolute http(s) URL."""


class WordlistError(PathFinderError):
    """Wordlist file is missing or unreadable."""


class FetchError(PathFinderError):
    """A single path could not be fetched. Never fatal to a scan."""

    def __init__(self, url: str, message: str):
        super().__init__(f"{url}: {message}")
        self.url = url


class MaxRedirectsExceeded(FetchError):
    def __init__(self, url: str, limit: int):
        super().__init__(url, f"max redirects exceeded ({limit})")
        self.limit = limit
