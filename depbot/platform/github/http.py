"""HTTP access to the GitHub REST and GraphQL APIs."""

import logging
from typing import Any, Dict, List

import requests

from depbot.platform.base import PlatformError

DEFAULT_API_URL = "https://api.github.com"

LOG = logging.getLogger("depbot.platform.github.http")


def graphql_url(api_url: str) -> str:
    """GraphQL endpoint for a REST base URL (GHE serves it next to /api/v3)."""
    base = api_url.rstrip("/")
    if base.endswith("/api/v3"):
        return base[: -len("/v3")] + "/graphql"
    return f"{base}/graphql"


class GithubHttp:
    """requests-based client with GET caching and pagination."""

    def __init__(self, token: str | None = None, api_url: str = DEFAULT_API_URL, timeout: int = 30) -> None:
        self._api_url = api_url.rstrip("/")
        self._timeout = timeout
        self._cache: Dict[str, Any] = {}
        self._session = requests.Session()
        self._session.headers["Accept"] = "application/vnd.github.v3+json"
        if token:
            self.set_token(token)

    @property
    def api_url(self) -> str:
        return self._api_url

    def set_base_url(self, api_url: str) -> None:
        self._api_url = api_url.rstrip("/")
        self.clear_cache()

    def set_token(self, token: str) -> None:
        if token.startswith("x-access-token:"):
            token = token[len("x-access-token:") :]
        self._session.headers["Authorization"] = f"token {token}"

    def clear_cache(self) -> None:
        self._cache.clear()

    def _url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self._api_url}{path}" if path.startswith("/") else f"{self._api_url}/{path}"

    def request(
        self,
        method: str,
        path: str,
        params: Dict[str, Any] | None = None,
        json: Any = None,
        headers: Dict[str, str] | None = None,
    ) -> requests.Response:
        """Send a request; raise PlatformError on transport errors and HTTP >= 400."""
        url = self._url(path)
        try:
            resp = self._session.request(
                method,
                url,
                params=params,
                json=json,
                headers=headers,
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            raise PlatformError(f"{method} {url}: {e}") from e
        if resp.status_code >= 400:
            body: Any = None
            msg = resp.text or resp.reason or str(resp.status_code)
            try:
                body = resp.json()
            except ValueError:
                body = None
            if isinstance(body, dict) and body.get("message"):
                msg = body["message"]
            raise PlatformError(f"{resp.status_code}: {msg}", status_code=resp.status_code, body=body)
        return resp

    @staticmethod
    def _json(resp: requests.Response) -> Any:
        if not resp.content:
            return None
        return resp.json()

    def get_json(
        self,
        path: str,
        params: Dict[str, Any] | None = None,
        use_cache: bool = True,
        paginate: bool = False,
        pagination_field: str | None = None,
        headers: Dict[str, str] | None = None,
    ) -> Any:
        """GET a JSON body.

        With paginate, follows Link rel="next" and concatenates list bodies
        (or the list under pagination_field). Results are cached per URL and
        params until clear_cache; use_cache=False always refetches and
        refreshes the cache entry.
        """
        key = f"{self._url(path)}?{sorted((params or {}).items())}"
        if use_cache and key in self._cache:
            LOG.debug("GET %s (cached)", path)
            return self._cache[key]
        resp = self.request("GET", path, params=params, headers=headers)
        body = self._json(resp)
        if paginate:
            body = self._collect_pages(resp, body, pagination_field, headers)
        self._cache[key] = body
        return body

    def _collect_pages(
        self,
        resp: requests.Response,
        body: Any,
        pagination_field: str | None,
        headers: Dict[str, str] | None,
    ) -> Any:
        if pagination_field and isinstance(body, dict):
            items: List[Any] = list(body.get(pagination_field) or [])
        elif isinstance(body, list):
            items = list(body)
        else:
            return body
        next_link = resp.links.get("next")
        while next_link:
            resp = self.request("GET", next_link["url"], headers=headers)
            page = self._json(resp)
            if pagination_field and isinstance(page, dict):
                items.extend(page.get(pagination_field) or [])
            elif isinstance(page, list):
                items.extend(page)
            next_link = resp.links.get("next")
        if pagination_field and isinstance(body, dict):
            return {**body, pagination_field: items}
        return items

    def post_json(self, path: str, json: Any = None, headers: Dict[str, str] | None = None) -> Any:
        return self._json(self.request("POST", path, json=json, headers=headers))

    def patch_json(self, path: str, json: Any = None) -> Any:
        return self._json(self.request("PATCH", path, json=json))

    def put_json(self, path: str, json: Any = None) -> Any:
        return self._json(self.request("PUT", path, json=json))

    def delete(self, path: str) -> None:
        self.request("DELETE", path)

    def head(self, path: str) -> requests.Response:
        return self.request("HEAD", path)

    def query(self, query: str, variables: Dict[str, Any] | None = None, headers: Dict[str, str] | None = None) -> Dict[str, Any]:
        """POST a GraphQL query; returns the whole body (data and errors)."""
        payload: Dict[str, Any] = {"query": query}
        if variables:
            payload["variables"] = variables
        resp = self.request("POST", graphql_url(self._api_url), json=payload, headers=headers)
        return self._json(resp) or {}

    def query_repo_field(
        self,
        query: str,
        field: str,
        variables: Dict[str, Any],
        paginate: bool = True,
        headers: Dict[str, str] | None = None,
    ) -> List[Any]:
        """Collect nodes (or edges) of repository.<field>, following endCursor pages.

        GraphQL errors raise PlatformError.
        """
        items: List[Any] = []
        cursor: str | None = None
        while True:
            page_vars = {**variables, "cursor": cursor} if paginate else variables
            body = self.query(query, page_vars, headers=headers)
            if body.get("errors"):
                raise PlatformError(f"GraphQL error: {body['errors']}", body=body)
            repository = (body.get("data") or {}).get("repository") or {}
            result = repository.get(field) or {}
            items.extend(result.get("nodes") or result.get("edges") or [])
            page_info = result.get("pageInfo") or {}
            if not paginate or not page_info.get("hasNextPage") or not page_info.get("endCursor"):
                return items
            cursor = page_info["endCursor"]
