"""Thin synchronous GitHub REST client built on httpx.

Every non-2xx response and every transport failure is raised as
:class:`GitHubAPIError`; callers decide which statuses are meaningful
(for example, 404 "Branch not protected").
"""

from __future__ import annotations

import base64
import logging
from typing import Any, Iterator

import httpx

from repokeeper import __version__
from repokeeper.config import DEFAULT_API_URL, Settings
from repokeeper.exceptions import GitHubAPIError

logger = logging.getLogger(__name__)

GITHUB_API_VERSION = "2022-11-28"
USER_AGENT = f"repokeeper/{__version__}"
PER_PAGE = 100


class GitHubClient:
    """Wraps an ``httpx.Client`` configured for api.github.com.

    Use as a context manager so the connection pool is closed::

        with GitHubClient.from_settings(settings) as gh:
            login = gh.authenticated_login()
    """

    def __init__(
        self,
        token: str,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self._http = httpx.Client(
            base_url=self.api_url,
            timeout=timeout,
            transport=transport,
            headers={
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": GITHUB_API_VERSION,
                "Authorization": f"Bearer {token}",
                "User-Agent": USER_AGENT,
            },
        )

    @classmethod
    def from_settings(cls, settings: Settings, transport: httpx.BaseTransport | None = None) -> GitHubClient:
        return cls(
            token=settings.require_token(),
            api_url=settings.api_url,
            timeout=settings.timeout,
            transport=transport,
        )

    def __enter__(self) -> GitHubClient:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        self._http.close()

    # -- transport -----------------------------------------------------------

    def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict | None = None,
    ) -> httpx.Response:
        """Send a request and raise :class:`GitHubAPIError` on failure."""
        logger.debug("%s %s", method, path)
        try:
            response = self._http.request(method, path, json=json, params=params)
        except httpx.RequestError as e:
            raise GitHubAPIError(0, f"Failed to reach GitHub API: {e}", method=method, path=path) from e

        if response.status_code >= 400:
            raise GitHubAPIError(
                response.status_code, _error_detail(response), method=method, path=path
            )
        return response

    def get_json(self, path: str, params: dict | None = None) -> Any:
        return self.request("GET", path, params=params).json()

    def paginate(self, path: str, params: dict | None = None, limit: int | None = None) -> Iterator[dict]:
        """Yield items across ``Link: rel="next"`` pages, stopping at ``limit``."""
        url: str | None = path
        next_params = {"per_page": PER_PAGE, **(params or {})}
        yielded = 0
        while url:
            response = self.request("GET", url, params=next_params)
            for item in response.json():
                yield item
                yielded += 1
                if limit is not None and yielded >= limit:
                    return
            url = response.links.get("next", {}).get("url")
            next_params = None

    # -- users and repositories ----------------------------------------------

    def authenticated_login(self) -> str:
        return self.get_json("/user")["login"]

    def get_repo(self, full_name: str) -> dict:
        return self.get_json(f"/repos/{full_name}")

    def default_branch(self, full_name: str) -> str:
        branch = self.get_repo(full_name).get("default_branch")
        if not branch:
            raise GitHubAPIError(404, f"Could not determine the default branch of {full_name}")
        return branch

    # -- licenses and contents -----------------------------------------------

    def license_body(self, key: str) -> str:
        return self.get_json(f"/licenses/{key}")["body"]

    def file_sha(self, full_name: str, path: str) -> str | None:
        """Return the blob sha of ``path`` or None when it does not exist."""
        try:
            return self.get_json(f"/repos/{full_name}/contents/{path}").get("sha")
        except GitHubAPIError as e:
            if e.is_not_found:
                return None
            raise

    def put_file(self, full_name: str, path: str, content: str, message: str, sha: str | None = None) -> dict:
        """Create or update a file in the repository's default branch."""
        payload = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
        }
        if sha:
            payload["sha"] = sha
        return self.request("PUT", f"/repos/{full_name}/contents/{path}", json=payload).json()


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return response.text
