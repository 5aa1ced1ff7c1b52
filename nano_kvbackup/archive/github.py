"""GitHub repository archive using the contents REST API."""

import base64
from typing import Any, Dict, List, Optional, Tuple

import httpx
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from .base import ArchiveFile, BaseArchive
from ..config import ArchiveConfig
from ..exceptions import ArchiveError, ArchiveNotFoundError
from .._utils import logger


class _TransientArchiveError(ArchiveError):
    """Server-side or rate-limit failure worth retrying."""
    pass


class GitHubArchive(BaseArchive):
    """Store backup files in a GitHub repository.

    Files are written with ``PUT /repos/{owner}/{repo}/contents/{path}``,
    which creates a commit per write. Updating or deleting a file requires
    its current blob SHA.
    """

    API_VERSION = "2022-11-28"

    def __init__(self, config: ArchiveConfig, client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=config.api_url,
            timeout=config.request_timeout,
        )
        self._headers = {
            "Authorization": f"Bearer {config.token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": self.API_VERSION,
        }

    def _contents_url(self, path: str) -> str:
        return f"/repos/{self.config.owner}/{self.config.name}/contents/{path.strip('/')}"

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(_TransientArchiveError),
        reraise=True,
    )
    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, str]] = None,
        accept: Optional[str] = None,
    ) -> httpx.Response:
        headers = dict(self._headers)
        if accept:
            headers["Accept"] = accept

        try:
            response = await self._client.request(
                method, self._contents_url(path), json=json, params=params, headers=headers
            )
        except httpx.TransportError as e:
            raise _TransientArchiveError(f"{method} {path} failed: {e}") from e

        if response.status_code == 404:
            raise ArchiveNotFoundError(path)
        if response.status_code == 429 or response.status_code >= 500:
            raise _TransientArchiveError(
                f"{method} {path} failed with HTTP {response.status_code}",
                status_code=response.status_code,
            )
        if response.status_code >= 400:
            raise ArchiveError(
                f"{method} {path} failed with HTTP {response.status_code}: {response.text}",
                status_code=response.status_code,
            )
        return response

    def _ref_params(self) -> Optional[Dict[str, str]]:
        return {"ref": self.config.branch} if self.config.branch else None

    async def get_file_content(self, path: str) -> Tuple[str, str]:
        response = await self._request("GET", path, params=self._ref_params())
        data = response.json()
        if isinstance(data, list):
            raise ArchiveError(f"{path} is a directory, not a file")

        sha = data["sha"]
        if data.get("encoding") == "base64" and data.get("content"):
            content = base64.b64decode(data["content"]).decode("utf-8")
        else:
            # Files over 1 MB are not inlined in the JSON response
            raw = await self._request(
                "GET", path, params=self._ref_params(), accept="application/vnd.github.raw+json"
            )
            content = raw.content.decode("utf-8")

        logger.debug(f"Fetched {path} ({len(content):,} chars, sha {sha[:7]})")
        return content, sha

    async def create_or_update_file(
        self,
        path: str,
        content: str,
        message: str,
        sha: Optional[str] = None,
    ) -> None:
        body: Dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
        }
        if sha:
            body["sha"] = sha
        if self.config.branch:
            body["branch"] = self.config.branch

        await self._request("PUT", path, json=body)
        logger.debug(f"{'Updated' if sha else 'Created'} {path} in {self.config.repo}")

    async def delete_file(self, path: str, message: str, sha: str) -> None:
        body: Dict[str, Any] = {"message": message, "sha": sha}
        if self.config.branch:
            body["branch"] = self.config.branch

        await self._request("DELETE", path, json=body)
        logger.debug(f"Deleted {path} from {self.config.repo}")

    async def list_directory(self, path: str) -> List[ArchiveFile]:
        response = await self._request("GET", path, params=self._ref_params())
        data = response.json()
        if not isinstance(data, list):
            return []
        return [
            ArchiveFile(name=item["name"], path=item["path"], sha=item["sha"])
            for item in data
            if item.get("type", "file") == "file"
        ]

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
