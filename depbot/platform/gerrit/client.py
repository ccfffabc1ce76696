"""Gerrit REST client (HTTP basic auth, authenticated `a/` endpoints)."""

import json
import logging
from typing import Any, Dict, List
from urllib.parse import quote

import requests
from requests.auth import HTTPBasicAuth

from depbot.platform.base import REPOSITORY_ARCHIVED, PlatformError, RepositoryError
from depbot.platform.gerrit.types import (
    GerritBranchInfo,
    GerritChange,
    GerritChangeMessageInfo,
    GerritProjectInfo,
)
from depbot.platform.models import PrState
from depbot.platform.util import from_base64

LOG = logging.getLogger("depbot.platform.gerrit.client")

XSSI_PREFIX = ")]}'"
QUERY_OPTIONS = [
    "SUBMITTABLE",
    "CHECK",
    "MESSAGES",
    "DETAILED_ACCOUNTS",
    "LABELS",
    "CURRENT_ACTIONS",
    "CURRENT_REVISION",
]
MAX_MESSAGE_LENGTH = 0x4000

_STATE_FILTERS = {
    PrState.OPEN.value: "status:open",
    PrState.CLOSED.value: "status:closed",
    PrState.MERGED.value: "status:merged",
    PrState.NOT_OPEN.value: "-status:open",
}


def build_search_filters(
    repository: str,
    branch_name: str | None = None,
    state: PrState | str | None = None,
    target_branch: str | None = None,
    label: str | None = None,
    pr_title: str | None = None,
) -> List[str]:
    """Query terms for the changes the bot owns in `repository`.

    Any state other than open/closed/merged/!open (including "all")
    selects every change that is not work in progress.
    """
    filters = ["owner:self", f"project:{repository}"]
    filters.append(_STATE_FILTERS.get(getattr(state, "value", state), "-is:wip"))
    if branch_name:
        filters.append(f"hashtag:sourceBranch-{branch_name}")
    if target_branch:
        filters.append(f"branch:{target_branch}")
    if label:
        filters.append(f"label:Code-Review={label}")
    if pr_title:
        quoted_title = quote('"' + pr_title + '"', safe="")
        filters.append(f"message:{quoted_title}")
    return filters


class GerritClient:
    """Thin wrapper over the Gerrit REST API.

    GET responses are cached per URL until clear_cache; find_changes can
    bypass the cache with refresh_cache=True.
    """

    def __init__(
        self,
        endpoint: str | None = None,
        username: str | None = None,
        password: str | None = None,
        timeout: int = 30,
    ) -> None:
        self._endpoint = ""
        self._timeout = timeout
        self._cache: Dict[str, Any] = {}
        self._session = requests.Session()
        self._session.headers["Accept"] = "application/json"
        if endpoint:
            self.configure(endpoint, username, password)

    @property
    def endpoint(self) -> str:
        return self._endpoint

    def configure(self, endpoint: str, username: str | None, password: str | None) -> None:
        self._endpoint = endpoint.rstrip("/") + "/"
        if username and password:
            self._session.auth = HTTPBasicAuth(username, password)
        self.clear_cache()

    def clear_cache(self) -> None:
        self._cache.clear()

    def _request(self, method: str, path: str, json_body: Any = None) -> requests.Response:
        url = f"{self._endpoint}{path}"
        try:
            resp = self._session.request(method, url, json=json_body, timeout=self._timeout)
        except requests.RequestException as e:
            raise PlatformError(f"{method} {url}: {e}") from e
        if resp.status_code >= 400:
            msg = resp.text or resp.reason or str(resp.status_code)
            raise PlatformError(f"{resp.status_code}: {msg.strip()}", status_code=resp.status_code, body=resp.text)
        return resp

    @staticmethod
    def _parse(resp: requests.Response) -> Any:
        text = resp.text
        if text.startswith(XSSI_PREFIX):
            text = text[len(XSSI_PREFIX) :]
        text = text.strip()
        if not text:
            return None
        return json.loads(text)

    def _get(self, path: str, use_cache: bool = True) -> Any:
        if use_cache and path in self._cache:
            return self._cache[path]
        body = self._parse(self._request("GET", path))
        self._cache[path] = body
        return body

    def _send(self, method: str, path: str, json_body: Any = None) -> Any:
        return self._parse(self._request(method, path, json_body))

    def get_repos(self) -> List[str]:
        body = self._get("a/projects/?type=CODE&state=ACTIVE") or {}
        return list(body.keys())

    def get_project_info(self, repository: str) -> GerritProjectInfo:
        info = GerritProjectInfo.model_validate(self._get(f"a/projects/{quote(repository, safe='')}"))
        if info.state != "ACTIVE":
            raise RepositoryError(REPOSITORY_ARCHIVED)
        return info

    def get_branch_info(self, repository: str) -> GerritBranchInfo:
        body = self._get(f"a/projects/{quote(repository, safe='')}/branches/HEAD")
        return GerritBranchInfo.model_validate(body)

    def find_changes(self, filters: List[str], refresh_cache: bool = False) -> List[GerritChange]:
        query = "+".join(filters)
        options = "".join(f"&o={o}" for o in QUERY_OPTIONS)
        body = self._get(f"a/changes/?q={query}{options}", use_cache=not refresh_cache) or []
        LOG.debug("find_changes(%s): %s result(s)", query, len(body))
        return [GerritChange.model_validate(c) for c in body]

    def get_change(self, number: int) -> GerritChange:
        options = "&".join(f"o={o}" for o in QUERY_OPTIONS)
        body = self._get(f"a/changes/{number}?{options}", use_cache=False)
        return GerritChange.model_validate(body)

    def get_messages(self, number: int) -> List[GerritChangeMessageInfo]:
        body = self._get(f"a/changes/{number}/messages", use_cache=False) or []
        return [GerritChangeMessageInfo.model_validate(m) for m in body]

    def add_message(self, number: int, message: str, tag: str | None = None) -> None:
        payload: Dict[str, Any] = {"message": message[:MAX_MESSAGE_LENGTH]}
        if tag:
            payload["tag"] = tag
        self._send("POST", f"a/changes/{number}/revisions/current/review", payload)

    def set_label(self, number: int, label: str, value: int) -> None:
        self._send("POST", f"a/changes/{number}/revisions/current/review", {"labels": {label: value}})

    def add_reviewer(self, number: int, reviewer: str) -> None:
        self._send("POST", f"a/changes/{number}/reviewers", {"reviewer": reviewer})

    def add_assignee(self, number: int, assignee: str) -> None:
        self._send("PUT", f"a/changes/{number}/assignee", {"assignee": assignee})

    def get_file(self, repository: str, branch: str, file_name: str) -> str:
        path = (
            f"a/projects/{quote(repository, safe='')}/branches/{quote(branch, safe='')}"
            f"/files/{quote(file_name, safe='')}/content"
        )
        return from_base64(self._request("GET", path).text)

    def approve_change(self, number: int) -> None:
        """Vote Code-Review +2 unless the change is already approved or has no such label."""
        change = self.get_change(number)
        review = change.labels.get("Code-Review")
        if review is None or review.approved is not None:
            return
        self.set_label(number, "Code-Review", 2)

    def set_commit_message(self, number: int, message: str) -> None:
        self._send("PUT", f"a/changes/{number}/message", {"message": message})

    def abandon_change(self, number: int) -> GerritChange | None:
        body = self._send("POST", f"a/changes/{number}/abandon")
        return GerritChange.model_validate(body) if body else None

    def submit_change(self, number: int) -> GerritChange:
        return GerritChange.model_validate(self._send("POST", f"a/changes/{number}/submit"))
