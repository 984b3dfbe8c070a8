"""Shared fixtures: a fake Hubs instance served through httpx.MockTransport."""

import json
from collections import Counter
from typing import Any, Callable, Dict, Union

import httpx
import pytest

from hubs_backup.models import BackupConfig, Credentials
from hubs_backup.services import CatalogAPIService, DownloadService


HOST = "hubs.test"
API = f"https://{HOST}/api/v1"
CDN = "https://cdn.hubs.test/files"

Route = Union[httpx.Response, Callable[[httpx.Request], httpx.Response]]


class FakeHubs:
    """Routes exact URLs to canned responses and records every request."""

    def __init__(self):
        self.routes: Dict[str, Route] = {}
        self.calls = Counter()

    def add_json(self, url: str, data: Any, status: int = 200) -> None:
        self.routes[url] = httpx.Response(status, json=data)

    def add_bytes(self, url: str, content: bytes, status: int = 200) -> None:
        self.routes[url] = httpx.Response(status, content=content)

    def add(self, url: str, route: Route) -> None:
        self.routes[url] = route

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.calls[url] += 1
        route = self.routes.get(url)
        if route is None:
            return httpx.Response(404, text="not found")
        if callable(route):
            return route(request)
        # Responses are single use once streamed; hand out a fresh copy
        return httpx.Response(route.status_code, headers=route.headers, content=route.content)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def media_search(self, source: str, account_id: str = "acc1", cursor=None, filter=None) -> str:
        url = f"{API}/media/search?source={source}&user={account_id}"
        if cursor:
            url += f"&cursor={cursor}"
        if filter:
            url += f"&filter={filter}"
        return url

    def add_listing(self, source: str, entries, next_cursor=None, cursor=None, filter=None) -> None:
        meta = {"source": source, "next_cursor": next_cursor}
        self.add_json(self.media_search(source, cursor=cursor, filter=filter),
                      {"entries": entries, "meta": meta})


@pytest.fixture
def credentials():
    return Credentials(host=HOST, email="user@example.com", token="tok", account_id="acc1")


@pytest.fixture
def config():
    return BackupConfig()


@pytest.fixture
def hubs():
    return FakeHubs()


@pytest.fixture
def catalog(hubs, credentials, config):
    return CatalogAPIService(credentials, config, client=hubs.client())


@pytest.fixture
def downloads(hubs, config):
    return DownloadService(config, client=hubs.client())


def read_json(path) -> Any:
    with open(path, encoding="utf-8") as f:
        return json.load(f)
