"""URL utilities - target normalization, asset resolution, origin checks."""

from urllib.parse import ParseResult, urljoin, urlparse, urlunparse

STATIC_EXTENSIONS = (".js", ".css")


def _strip_default_port(scheme: str, netloc: str) -> str:
    netloc = netloc.lower()
    if ":" in netloc:
        host, port = netloc.rsplit(":", 1)
        if (scheme == "http" and port == "80") or (scheme == "https" and port == "443"):
            return host
    return netloc


def normalize_target(target: str) -> str:
    """Normalize a user-supplied target into a base URL.

    - Adds ``https://`` when no scheme is given
    - Lowercases the scheme and host
    - Removes default ports (80, 443)
    - Drops query and fragment
    - Ensures the path ends with "/"

    Args:
        target: Domain or URL as typed by the user.

    Returns:
        Normalized base URL, or "" if no host can be found.
    """
    text = (target or "").strip()
    if not text:
        return ""
    if "://" not in text:
        text = f"https://{text}"

    parsed = urlparse(text)
    scheme = parsed.scheme.lower()
    netloc = _strip_default_port(scheme, parsed.netloc)
    if not netloc:
        return ""

    path = parsed.path or "/"
    if not path.endswith("/"):
        path += "/"

    return urlunparse(ParseResult(scheme=scheme, netloc=netloc, path=path, params="", query="", fragment=""))


def is_valid_url(url: str) -> bool:
    """Check if a string is a valid HTTP/HTTPS URL."""
    try:
        parsed = urlparse(url)
        return parsed.scheme in ("http", "https") and bool(parsed.netloc)
    except ValueError:
        return False


def is_same_origin(url1: str, url2: str) -> bool:
    """Same scheme, host and effective port."""
    parsed1 = urlparse(url1)
    parsed2 = urlparse(url2)

    scheme1 = parsed1.scheme.lower()
    scheme2 = parsed2.scheme.lower()
    if scheme1 != scheme2:
        return False

    return _strip_default_port(scheme1, parsed1.netloc) == _strip_default_port(scheme2, parsed2.netloc)


def resolve_url(base: str, reference: str) -> str:
    """Resolve a possibly relative or protocol-relative reference."""
    return urljoin(base, reference.strip())


def join_path(base_url: str, path: str) -> str:
    """Join a site-root-relative path onto the base URL."""
    return urljoin(base_url.rstrip("/") + "/", path.lstrip("/"))


def strip_query(url: str) -> str:
    parsed = urlparse(url)
    return urlunparse(parsed._replace(query="", fragment=""))


def asset_filename(url: str) -> str:
    """Last path segment of an asset URL, without query string."""
    path = urlparse(url).path
    return path.rsplit("/", 1)[-1]


def is_static_asset(url: str) -> bool:
    """True for script and stylesheet URLs."""
    return urlparse(url).path.lower().endswith(STATIC_EXTENSIONS)


def deduplicate_urls(urls: list[str]) -> list[str]:
    """Remove duplicates, comparing without query string or fragment."""
    seen: set[str] = set()
    unique: list[str] = []

    for url in urls:
        key = strip_query(url).lower()
        if key not in seen:
            seen.add(key)
            unique.append(url)

    return unique
