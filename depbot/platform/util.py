"""Small helpers shared by the platform adapters."""

import base64
import hashlib
import json
from datetime import datetime
from typing import Any

import json5


def repo_fingerprint(repo_id: int | str | None, endpoint: str | None) -> str:
    """Stable identifier of a repository on an endpoint (sha512 hex)."""
    value = f"{endpoint}::{repo_id if repo_id is not None else ''}" if endpoint else f"{repo_id}"
    return hashlib.sha512(value.encode("utf-8")).hexdigest()


def parse_json(raw: str, file_name: str) -> Any:
    """Parse file content; .json5 files are parsed with JSON5."""
    if file_name.endswith(".json5"):
        return json5.loads(raw)
    return json.loads(raw)


def parse_iso(s: str) -> datetime:
    return datetime.fromisoformat(s.replace("Z", "+00:00"))


def escape_hash(value: str) -> str:
    """Escape '#' in branch names used in URL paths."""
    return value.replace("#", "%23")


def from_base64(value: str) -> str:
    return base64.b64decode(value).decode("utf-8")


def hash_body(body: str | None) -> str:
    """Hash of a PR body, used to detect body changes without storing it."""
    return hashlib.sha512((body or "").strip().encode("utf-8")).hexdigest()
