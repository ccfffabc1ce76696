"""Markdown helpers: length limits and secret redaction for PR/issue bodies."""

import re
from typing import Iterable

REDACTED = "**redacted**"

_RELEASE_NOTES_RE = re.compile(
    r"(?P<pre>.*### Release Notes)(?P<notes>.*)### Configuration(?P<post>.*)",
    re.DOTALL,
)
_DIVIDER = "\n\n</details>\n\n---\n\n### Configuration"


def smart_truncate(text: str, length: int) -> str:
    """Shorten text to at most `length` characters.

    When the body has a release notes section followed by a configuration
    section, only the release notes are shortened so the configuration
    footer survives. Otherwise the text is cut at `length`.
    """
    if len(text) < length:
        return text
    match = _RELEASE_NOTES_RE.match(text)
    if not match:
        return text[:length]
    pre, notes, post = match.group("pre"), match.group("notes"), match.group("post")
    available = length - (len(pre) + len(post) + len(_DIVIDER))
    if available <= 0:
        return text[:length]
    return pre + notes[:available] + _DIVIDER + post


def sanitize(text: str | None, secrets: Iterable[str | None]) -> str:
    """Replace every known secret in text with a redaction marker."""
    if not text:
        return text or ""
    for secret in secrets:
        if secret:
            text = text.replace(secret, REDACTED)
    return text
