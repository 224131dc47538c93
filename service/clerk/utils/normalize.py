"""
URL and text normalization utilities.

Ensures links are stored in one canonical form so duplicate checks and
domain lookups compare like with like.
"""

import re
from urllib.parse import urlsplit, urlunsplit

CANONICAL_X_HOST = "x.com"

# Alias hosts rewritten to x.com. Order matters: vxtwitter.com also ends with twitter.com
X_HOST_ALIASES = ("vxtwitter.com", "twitter.com")

MAX_DESCRIPTION_LENGTH = 500

_SCHEME = re.compile(r'^[a-zA-Z][a-zA-Z0-9+.-]*://')

# Characters that must be backslash-escaped in Telegram MarkdownV2
_MARKDOWN_SPECIAL_CHARS = re.compile(r'([-_*\[,\]()~`>#+=|{}.!])')


def is_host_or_subdomain(host: str, domain: str) -> bool:
    """True for the domain itself or any sub-domain; netflix.com is not x.com."""
    return host == domain or host.endswith("." + domain)


def is_x_url(url: str) -> bool:
    """True when the URL points at x.com (or a sub-domain of it)."""
    host = (urlsplit(url).hostname or "").lower()
    return is_host_or_subdomain(host, CANONICAL_X_HOST)


def normalize_url(url: str) -> str:
    """
    Canonicalize a user-supplied URL.

    Rules, in order:
    - "example.com/a" -> "https://example.com/a"
    - "http://..." -> "https://..."
    - twitter.com / vxtwitter.com (and sub-domains) -> x.com
    - x.com links lose their query string and fragment

    Idempotent: normalize_url(normalize_url(u)) == normalize_url(u).
    """
    clean_url = url.strip()

    if not _SCHEME.match(clean_url):
        clean_url = "https://" + clean_url

    parts = urlsplit(clean_url)
    scheme = "https"
    netloc = parts.netloc
    host = (parts.hostname or "").lower()

    for alias in X_HOST_ALIASES:
        if is_host_or_subdomain(host, alias):
            host = host[:-len(alias)] + CANONICAL_X_HOST
            netloc = host if parts.port is None else f"{host}:{parts.port}"
            break

    if is_host_or_subdomain(host, CANONICAL_X_HOST):
        return urlunsplit((scheme, netloc, parts.path, "", ""))

    return urlunsplit((scheme, netloc, parts.path, parts.query, parts.fragment))


def truncate_string(text: str, max_length: int = MAX_DESCRIPTION_LENGTH) -> str:
    """Cut text longer than max_length down to max_length, ending in '...'."""
    if len(text) > max_length:
        return text[:max_length - 3] + "..."
    return text


def clean_text_for_markdown(text: str) -> str:
    """
    Make free text safe to embed in a MarkdownV2 message.

    Escapes the MarkdownV2 punctuation, flattens newlines and runs of
    whitespace to single spaces, and swaps '@' for the full-width '＠' so
    handles are not turned into mentions.
    """
    text = _MARKDOWN_SPECIAL_CHARS.sub(r'\\\1', text)
    text = text.replace("\n", " ")
    text = re.sub(r'\s+', ' ', text)
    return text.replace("@", "＠")
