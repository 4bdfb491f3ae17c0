"""URL normalization for stable cache keys."""
import logging
from urllib.parse import urlsplit, urlunsplit

logger = logging.getLogger(__name__)

CACHE_KEY_PREFIX = "extraction:"

_DEFAULT_PATH_SCHEMES = {"http", "https"}


def _lower_host(netloc: str) -> str:
    """Lowercase the host part, leave userinfo alone."""
    if "@" in netloc:
        userinfo, host = netloc.rsplit("@", 1)
        return f"{userinfo}@{host.lower()}"
    return netloc.lower()


def normalize_url(url: str) -> str:
    """
    Canonicalize a URL so equivalent inputs share one cache key.

    - strips trailing slashes from the path
    - sorts query parameters by key (values and their order kept)
    - lowercases scheme and host

    Best-effort: input that can't be parsed is returned unchanged.
    Idempotent: normalize_url(normalize_url(x)) == normalize_url(x).
    """
    try:
        parts = urlsplit(url)
    except (ValueError, TypeError, AttributeError):
        return url

    if not parts.scheme or not parts.netloc:
        return url

    scheme = parts.scheme.lower()

    path = parts.path.rstrip("/")
    if not path and scheme in _DEFAULT_PATH_SCHEMES:
        path = "/"

    # raw pieces, never decoded: %FF and %FE must stay distinct
    pieces = [piece for piece in parts.query.split("&") if piece]
    # sorted() is stable, so repeated keys keep their order
    query = "&".join(sorted(pieces, key=lambda piece: piece.partition("=")[0]))

    return urlunsplit((scheme, _lower_host(parts.netloc), path, query, parts.fragment))


def cache_key(url: str) -> str:
    """Server cache key for a URL."""
    return f"{CACHE_KEY_PREFIX}{normalize_url(url)}"
