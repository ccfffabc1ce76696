"""Mapping helpers between Gerrit entities and the shared platform models."""

import re
from datetime import datetime, timezone
from urllib.parse import quote, urlparse, urlunparse

from depbot.platform.base import CONFIG_GIT_URL_UNAVAILABLE, RepositoryError
from depbot.platform.gerrit.types import TAG_PULL_REQUEST_BODY, GerritChange, GerritLabelTypeInfo
from depbot.platform.models import BranchStatus, Pr, PrState
from depbot.platform.util import hash_body

SOURCE_BRANCH_HASHTAG = "sourceBranch-"

_CHANGE_STATES = {
    "NEW": PrState.OPEN,
    "MERGED": PrState.MERGED,
    "ABANDONED": PrState.CLOSED,
}
_PATCH_SET_PREFIX = re.compile(r"^Patch Set \d+:\n\n")


def get_gerrit_repo_url(
    repository: str,
    endpoint: str,
    username: str | None = None,
    password: str | None = None,
) -> str:
    """Clone URL of a project: <endpoint>/a/<url-encoded repository>, with optional credentials."""
    parsed = urlparse(endpoint)
    if not parsed.scheme or not parsed.netloc:
        raise RepositoryError(CONFIG_GIT_URL_UNAVAILABLE)
    netloc = parsed.netloc
    if username and password:
        netloc = f"{quote(username, safe='')}:{quote(password, safe='')}@{parsed.hostname}"
        if parsed.port:
            netloc += f":{parsed.port}"
    path = f"{parsed.path.rstrip('/')}/a/{quote(repository, safe='')}"
    return urlunparse((parsed.scheme, netloc, path, "", "", ""))


def parse_gerrit_timestamp(value: str | None) -> datetime | None:
    """Gerrit timestamps look like '2023-03-01 10:20:30.000000000' (UTC)."""
    if not value:
        return None
    return datetime.strptime(value[:19], "%Y-%m-%d %H:%M:%S").replace(tzinfo=timezone.utc)


def extract_source_branch(change: GerritChange) -> str | None:
    for tag in change.hashtags:
        if tag.startswith(SOURCE_BRANCH_HASHTAG):
            return tag[len(SOURCE_BRANCH_HASHTAG) :]
    return None


def extract_pull_request_body(change: GerritChange) -> str | None:
    messages = [m for m in change.messages if m.tag == TAG_PULL_REQUEST_BODY]
    if not messages:
        return None
    return _PATCH_SET_PREFIX.sub("", messages[-1].message)


def map_gerrit_change_to_pr(change: GerritChange) -> Pr:
    body = extract_pull_request_body(change)
    reviewers = [r.username for r in change.reviewers.get("REVIEWER", []) if r.username]
    return Pr(
        number=change.number,
        state=_CHANGE_STATES.get(change.status, PrState.OPEN),
        source_branch=extract_source_branch(change) or change.branch,
        target_branch=change.branch,
        title=change.subject,
        sha=change.current_revision,
        body=body,
        body_hash=hash_body(body),
        reviewers=reviewers,
        has_reviewers=bool(reviewers),
        created_at=parse_gerrit_timestamp(change.created),
        can_merge=change.submittable,
        display_number=f"Change #{change.number}",
    )


def map_branch_status_to_label(state: BranchStatus | str, label: GerritLabelTypeInfo) -> int:
    votes = [int(value) for value in label.values]
    if not votes:
        return label.default_value
    if state == BranchStatus.GREEN:
        return max(votes)
    if state in (BranchStatus.YELLOW, BranchStatus.RED):
        return min(votes)
    return label.default_value
