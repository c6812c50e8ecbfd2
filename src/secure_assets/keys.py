"""Reference normalisation into cache keys."""

from urllib.parse import urlsplit, urlunsplit

DEFAULT_PORTS = {"http": 80, "https": 443}


def normalize_reference(reference: str) -> str:
    """
    Build the ResourceKey for a protected reference.

    Two spellings of the same resource map to the same key: scheme and host
    are lower-cased, default ports and fragments are dropped, surrounding
    whitespace is stripped, and an empty path becomes "/". The path and query
    are kept verbatim since the resource server may treat them case-sensitively.
    """
    reference = reference.strip()
    parts = urlsplit(reference)
    if not parts.scheme or not parts.netloc:
        return reference

    scheme = parts.scheme.lower()
    host = (parts.hostname or "").lower()
    try:
        port = parts.port
    except ValueError:
        return reference
    netloc = host if port is None or DEFAULT_PORTS.get(scheme) == port else f"{host}:{port}"
    if parts.username:
        userinfo = parts.username
        if parts.password:
            userinfo = f"{userinfo}:{parts.password}"
        netloc = f"{userinfo}@{netloc}"

    return urlunsplit((scheme, netloc, parts.path or "/", parts.query, ""))


def reference_origin(reference: str) -> str | None:
    """
    Return ``scheme://host`` for an absolute reference, lower-cased and without port.

    None for relative references, malformed ports and references carrying
    userinfo, so ``https://trusted@other/`` never passes for ``trusted``.
    """
    try:
        parts = urlsplit(reference.strip())
        parts.port
    except ValueError:
        return None
    if not parts.scheme or not parts.hostname:
        return None
    if parts.username is not None or parts.password is not None:
        return None
    return f"{parts.scheme.lower()}://{parts.hostname}"


def rewrite_base_url(reference: str, base_url: str | None) -> str:
    """Swap the scheme and host of a reference for base_url, keeping path and query."""
    if not base_url:
        return reference

    parts = urlsplit(reference)
    base = urlsplit(base_url)
    path = base.path.rstrip("/") + (parts.path or "/")
    return urlunsplit((base.scheme, base.netloc, path, parts.query, ""))


__all__ = ["normalize_reference", "reference_origin", "rewrite_base_url"]
