"""
Cache key derivation for remote repository URLs.

Equivalent spellings of a URL map to the same key; distinct URLs never
share a key.

Normalization:
    - surrounding whitespace and trailing slashes are stripped
    - query string, fragment and user info (credentials) are dropped
    - a missing scheme defaults to ``https``; ``user@host:path`` is
      rewritten to ``ssh://host/path``; absolute paths become ``file://``
    - scheme and host are lower-cased, default ports are dropped

Example:
    >>> normalize_url("GitHub.com/google/copybara/")
    'https://github.com/google/copybara'
    >>> cache_key("https://github.com/google/copybara")
    'https%3A%2F%2Fgithub.com%2Fgoogle%2Fcopybara'
"""

import hashlib
import re
from urllib.parse import quote, urlsplit

MAX_KEY_LENGTH = 200

DEFAULT_PORTS: dict[str, int] = {
    "http": 80,
    "https": 443,
    "ssh": 22,
    "git": 9418,
}

_SCP_LIKE = re.compile(r"^(?:[^@/\s]+@)?(?P<host>[^:/\s]+):(?!//)(?P<path>.+)$")
_HAS_SCHEME = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*://")


def normalize_url(url: str) -> str:
    """
    Normalize a remote repository URL.

    Args:
        url: Remote URL in any of the supported spellings

    Returns:
        ``scheme://host[:port]/path`` with the normalization rules applied

    Raises:
        ValueError: If the URL is empty or has no host or path
    """
    url = url.strip()
    if not url:
        raise ValueError("Repository URL must not be empty")

    if not _HAS_SCHEME.match(url):
        if url.startswith("/"):
            url = f"file://{url}"
        elif match := _SCP_LIKE.match(url):
            url = f"ssh://{match['host']}/{match['path'].lstrip('/')}"
        else:
            url = f"https://{url}"

    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    host = (parts.hostname or "").lower()
    path = parts.path.rstrip("/")

    if scheme == "file":
        if not path:
            raise ValueError(f"Repository URL has no path: {url!r}")
        return f"file://{path}"

    if not host:
        raise ValueError(f"Repository URL has no host: {url!r}")

    port = ""
    if parts.port is not None and parts.port != DEFAULT_PORTS.get(scheme):
        port = f":{parts.port}"

    return f"{scheme}://{host}{port}{path}"


def cache_key(url: str) -> str:
    """
    Derive the cache directory name for a remote URL.

    The key is the percent-encoded normalized URL, which is injective and
    safe as a single path component. Keys longer than ``MAX_KEY_LENGTH``
    are replaced by ``sha256-<hex digest>`` of the normalized URL.

    Args:
        url: Remote URL

    Returns:
        Filesystem-safe, deterministic key
    """
    normalized = normalize_url(url)
    key = quote(normalized, safe="")
    if len(key) > MAX_KEY_LENGTH:
        return "sha256-" + hashlib.sha256(normalized.encode()).hexdigest()
    return key


__all__ = ["MAX_KEY_LENGTH", "cache_key", "normalize_url"]
