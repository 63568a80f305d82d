"""URL helpers for booking-link domain checks."""

from urllib.parse import urlsplit


def url_host(url: str | None) -> str | None:
    """Lower-cased host of an absolute URL, without a leading "www.", or None."""
    if not url:
        return None
    try:
        host = urlsplit(url.strip()).hostname
    except ValueError:
        return None
    if not host:
        return None
    host = host.lower().rstrip(".")
    if host.startswith("www."):
        host = host[4:]
    return host


def host_matches(host: str, domain: str) -> bool:
    """True if host is the domain itself or one of its subdomains."""
    domain = domain.lower()
    return host == domain or host.endswith("." + domain)


def is_absolute_http_url(url: str) -> bool:
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    return parts.scheme in ("http", "https") and bool(parts.netloc)
