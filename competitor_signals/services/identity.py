"""Competitor identity: canonical keys, 'Name, domain' parsing, and list dedup."""
import logging
import re
from collections.abc import Iterable
from typing import Optional, Union

from competitor_signals.schemas.signals import CompetitorIdentity

logger = logging.getLogger(__name__)

_PROTOCOL_RE = re.compile(r"^[a-z][a-z0-9+.-]*://")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]")
_DOMAIN_LIKE_RE = re.compile(r"^[a-z0-9-]+(\.[a-z0-9-]+)*\.[a-z]{2,}$")
_DOMAIN_IN_TEXT_RE = re.compile(
    r"(?:https?://)?(?:www\.)?((?:[a-z0-9](?:[a-z0-9-]*[a-z0-9])?\.)+[a-z]{2,})(?:[/:?#]\S*)?",
    re.IGNORECASE,
)


def _strip_host(value: str) -> str:
    value = _PROTOCOL_RE.sub("", value.strip().lower())
    if value.startswith("www."):
        value = value[4:]
    return value.split("/", 1)[0]


def canonicalize(raw: str) -> str:
    """Reduce a name, domain, or 'Name, domain' entry to its canonical key.

    ``"OpenAI"``, ``"openai.com"`` and ``"OpenAI, openai.com"`` all map to
    ``"openai"``. The result is lowercase alphanumeric, so applying it twice is
    a no-op. An empty string means the entry carries no usable identity.
    """
    head = (raw or "").split(",", 1)[0]
    host = _strip_host(head)
    if _DOMAIN_LIKE_RE.match(host):
        host = host.split(".", 1)[0]
    return _NON_ALNUM_RE.sub("", host)


def normalize_domain(value: str) -> Optional[str]:
    host = _strip_host(value).split(":", 1)[0]
    return host if _DOMAIN_LIKE_RE.match(host) else None


def parse_line(line: str) -> tuple[str, Optional[str]]:
    """Split one input line into (display name, domain or None).

    A domain is anything shaped like ``label.tld``. Without an explicit name in
    front of it the display name is the title-cased host label.
    """
    text = (line or "").strip()
    if not text:
        return "", None
    if "," in text:
        name_part, rest = (p.strip() for p in text.split(",", 1))
    else:
        name_part, rest = "", text
    match = _DOMAIN_IN_TEXT_RE.search(rest)
    if not match:
        return (name_part or rest), None
    domain = normalize_domain(match.group(1))
    if not name_part:
        name_part = rest[: match.start()].strip(" -:|")
    if not name_part and domain:
        name_part = domain.split(".", 1)[0].title()
    return name_part, domain


def parse_competitor_list(entries: Union[str, Iterable[str]]) -> list[CompetitorIdentity]:
    """Parse and dedupe competitor entries, keeping first-seen display names."""
    lines = entries.splitlines() if isinstance(entries, str) else list(entries)
    by_key: dict[str, CompetitorIdentity] = {}
    for line in lines:
        name, domain = parse_line(line)
        key = canonicalize(name) or (canonicalize(domain) if domain else "")
        if not key:
            if line and line.strip():
                logger.debug("Dropping competitor entry with empty key: %r", line)
            continue
        if key not in by_key:
            by_key[key] = CompetitorIdentity(display_name=name, domain=domain, canonical_key=key)
    return list(by_key.values())


def parse_url_list(text: str) -> list[str]:
    """Non-empty, de-duplicated lines of a newline-separated URL field."""
    seen: list[str] = []
    for line in (text or "").splitlines():
        url = line.strip()
        if url and url not in seen:
            seen.append(url)
    return seen
