"""
Catalog API service: cursor-paginated read access to the account's
content on a Hubs instance.
"""

from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import httpx

from ..infrastructure.error_handler import CatalogError, handle_api_error
from ..infrastructure.logger import logger
from ..models import Avatar, BackupConfig, CatalogPage, Credentials, ProjectScene


# media/search sources
SOURCE_AVATARS = "avatars"
SOURCE_ROOMS = "rooms"
SOURCE_ASSETS = "assets"


class CatalogAPIService:
    """
    Thin async client for the catalog REST API.

    All list endpoints under ``media/search`` share one pagination scheme:
    ``{"entries": [...], "meta": {"next_cursor": ...}}``.
    """

    def __init__(
        self,
        credentials: Credentials,
        config: Optional[BackupConfig] = None,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.credentials = credentials
        self.config = config or BackupConfig()
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=self.config.timeout,
            verify=self.config.verify_ssl,
            follow_redirects=True,
        )

    async def __aenter__(self) -> "CatalogAPIService":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    def get_url(self, path: str) -> str:
        return f"https://{self.credentials.netloc}/api/v1/{path}"

    def get_room_objects_url(self, hub_id: str) -> str:
        return f"https://{self.credentials.netloc}/{hub_id}/objects.gltf"

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "content-type": "application/json",
            "authorization": f"bearer {self.credentials.token}",
            "user-agent": self.config.user_agent,
        }

    @handle_api_error
    async def request(self, path: str, method: str = "GET", payload: Optional[Dict[str, Any]] = None) -> Any:
        """
        Perform an authenticated API call.

        Returns:
            Decoded JSON, or the raw body text when the response is not JSON
        """
        url = self.get_url(path)
        logger.debug(f"{method} {url}")

        response = await self.client.request(method, url, headers=self.headers, json=payload)
        response.raise_for_status()

        try:
            return response.json()
        except ValueError:
            # Some endpoints (deletes in particular) answer with plain text
            return response.text

    @staticmethod
    def _expect_mapping(data: Any, path: str) -> Dict[str, Any]:
        if not isinstance(data, dict):
            raise CatalogError(f"Expected a JSON object from {path}, got {type(data).__name__}")
        return data

    @staticmethod
    def _expect_entries(data: Dict[str, Any], key: str, path: str) -> List[Dict[str, Any]]:
        entries = data.get(key)
        if not isinstance(entries, list):
            raise CatalogError(f"Malformed listing from {path}")
        return entries

    async def list_page(
        self,
        source: str,
        account_id: Optional[str] = None,
        filter: Optional[str] = None,
        cursor: Optional[str] = None
    ) -> CatalogPage[Dict[str, Any]]:
        """Fetch a single page of a ``media/search`` listing."""

        params = {"source": source}
        if account_id:
            params["user"] = account_id
        if cursor:
            params["cursor"] = cursor
        if filter:
            params["filter"] = filter

        path = f"media/search?{urlencode(params)}"
        data = self._expect_mapping(await self.request(path), path)

        entries = self._expect_entries(data, "entries", path)
        meta = data.get("meta") or {}
        next_cursor = meta.get("next_cursor")

        return CatalogPage(
            entries=list(entries),
            next_cursor=str(next_cursor) if next_cursor else None
        )

    async def list_all(
        self,
        source: str,
        account_id: Optional[str] = None,
        filter: Optional[str] = None,
        probe: bool = False
    ) -> List[Dict[str, Any]]:
        """
        Concatenate every page of a listing in page order.

        Args:
            source: media/search source name
            account_id: Restrict the listing to this account
            filter: Optional server side filter (e.g. ``created``)
            probe: Only fetch the first page

        Returns:
            All entries of the listing
        """
        entries: List[Dict[str, Any]] = []
        cursor: Optional[str] = None

        while True:
            page = await self.list_page(source, account_id, filter, cursor)
            entries.extend(page.entries)
            if probe or page.is_last:
                break
            cursor = page.next_cursor

        logger.debug(f"Listed {len(entries)} {source} entries")
        return entries

    # Listings hand back raw entries; exporters build the typed record per item

    async def list_avatars(self, probe: bool = False) -> List[Dict[str, Any]]:
        return await self.list_all(SOURCE_AVATARS, self.credentials.account_id, probe=probe)

    async def list_rooms(self, probe: bool = False) -> List[Dict[str, Any]]:
        return await self.list_all(
            SOURCE_ROOMS, self.credentials.account_id, filter="created", probe=probe
        )

    async def list_assets(self, probe: bool = False) -> List[Dict[str, Any]]:
        return await self.list_all(SOURCE_ASSETS, self.credentials.account_id, probe=probe)

    @handle_api_error
    async def get_avatar(self, avatar_id: str) -> Avatar:
        path = f"avatars/{avatar_id}"
        data = self._expect_mapping(await self.request(path), path)
        return Avatar.from_dict(data["avatars"][0])

    @handle_api_error
    async def get_projectless_scenes(self) -> List[Dict[str, Any]]:
        path = "scenes/projectless"
        data = self._expect_mapping(await self.request(path), path)
        return self._expect_entries(data, "scenes", path)

    @handle_api_error
    async def get_projects(self) -> List[Dict[str, Any]]:
        path = "projects"
        data = self._expect_mapping(await self.request(path), path)
        return self._expect_entries(data, "projects", path)

    @handle_api_error
    async def get_project_scene(self, project_id: str) -> ProjectScene:
        path = f"projects/{project_id}"
        data = self._expect_mapping(await self.request(path), path)
        return ProjectScene.from_dict(data)


__all__ = [
    "CatalogAPIService",
    "SOURCE_AVATARS",
    "SOURCE_ROOMS",
    "SOURCE_ASSETS",
]
