"""Path and URL normalization for deployments under a base path."""

import re
from urllib.parse import quote

_SCHEME = re.compile(r"^[a-z][a-z0-9+.-]*://", re.IGNORECASE)


def normalize_path(path: str | None) -> str:
    """Normalize a path prefix.

    Examples:
        normalize_path("") -> ""
        normalize_path("newsletter/") -> "/newsletter"
        normalize_path("//a//b/") -> "/a/b"
    """
    if not path or not path.strip():
        return ""
    path = re.sub(r"/{2,}", "/", path.strip())
    if not path.startswith("/"):
        path = "/" + path
    return path.rstrip("/")


def normalize_url(url: str | None, trailing_slash: bool = False) -> str | None:
    """Ensure a URL has a scheme and a consistent trailing slash."""
    if not url or not url.strip():
        return None
    url = url.strip()
    if not _SCHEME.match(url):
        url = f"http://{url}"
    url = url.rstrip("/")
    return f"{url}/" if trailing_slash else url


def join_paths(*segments: str) -> str:
    """Join path segments with exactly one slash between them."""
    parts = [normalize_path(s) for s in segments if s and s.strip()]
    parts = [p for p in parts if p]
    if not parts:
        return "/"
    return "".join(parts)


def join_url(base_url: str, *segments: str) -> str:
    """Append path segments to a base URL."""
    base = normalize_url(base_url)
    if base is None:
        raise ValueError("base_url must not be empty")
    return base + join_paths(*segments)


def build_confirmation_endpoint(base_url: str, base_path: str) -> str:
    """Absolute URL of the confirmation endpoint."""
    return join_url(base_url, base_path, "confirm")


def confirmation_link(endpoint: str, token: str) -> str:
    """Attach a token to the confirmation endpoint.

    Token keys are already URL-safe, so they are appended without
    re-encoding.
    """
    return f"{endpoint}?token={quote(token, safe='-_=')}"
