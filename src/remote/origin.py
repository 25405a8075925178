"""Origin key normalization for per-host caching."""

from __future__ import annotations

from urllib.parse import urlsplit

from core.errors import MetalensConfigError

_DEFAULT_PORTS = {"http": 80, "https": 443}


def normalize_origin(url: str) -> str:
    """Reduce a URL to its ``scheme://host[:port]`` origin.

    Args:
        url: Any URL on the host application, or a bare origin.

    Returns:
        Lower-cased origin without path, query, or default port.

    Raises:
        MetalensConfigError: If the URL has no http(s) scheme or host.
    """
    parts = urlsplit(url.strip())
    scheme = parts.scheme.lower()
    if scheme not in _DEFAULT_PORTS or not parts.hostname:
        raise MetalensConfigError(
            f"Invalid origin '{url}': expected an http(s) URL such as "
            "https://warehouse.example.com."
        )
    origin = f"{scheme}://{parts.hostname.lower()}"
    if parts.port is not None and parts.port != _DEFAULT_PORTS[scheme]:
        origin = f"{origin}:{parts.port}"
    return origin
