import asyncio

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from hubs_backup.core.orchestrator import BackupOrchestrator, get_log_path
from hubs_backup.models import BackupCategory, BackupConfig, BackupRequest
from hubs_backup.services import CatalogAPIService, DownloadService

from tests.conftest import API, CDN, read_json


class Recorder:
    def __init__(self):
        self.events = []

    def __call__(self, event):
        self.events.append(event)

    def percents(self, category):
        return [event.percent for event in self.events if event.category == category]


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def orchestrator(hubs, recorder):
    config = BackupConfig(progress_callback=recorder)
    return BackupOrchestrator(
        config,
        catalog_factory=lambda credentials, cfg: CatalogAPIService(credentials, cfg, client=hubs.client()),
        download_factory=lambda cfg: DownloadService(cfg, client=hubs.client()),
    )


def make_request(tmp_path, credentials, categories, override=False):
    return BackupRequest(
        directory=tmp_path,
        categories=categories,
        credentials=credentials,
        override=override,
    )


def add_assets(hubs, *names):
    entries = []
    for name in names:
        url = f"{CDN}/{name}"
        hubs.add_bytes(url, name.encode())
        entries.append({"id": name, "url": url, "name": name})
    hubs.add_listing("assets", entries)
    return entries


def test_initialization_defaults():
    orchestrator = BackupOrchestrator()
    assert orchestrator.catalog_factory is CatalogAPIService
    assert orchestrator.download_factory is DownloadService
    assert not orchestrator.cancellation.is_cancelled
    assert not orchestrator.is_running


def test_log_path_layout(tmp_path, credentials):
    assert get_log_path(tmp_path, credentials) == tmp_path / "hubs.test" / "user@example.com" / "backup.log"


@pytest.mark.asyncio
async def test_media_only_backup(orchestrator, hubs, recorder, tmp_path, credentials):
    entries = add_assets(hubs, "a.png", "b.mp4")

    ok = await orchestrator.run(make_request(tmp_path, credentials, BackupCategory.MEDIA))

    media = tmp_path / "hubs.test" / "user@example.com" / "media"
    assert ok is True
    assert read_json(media / "assets.json") == entries
    assert (media / "a.png").read_bytes() == b"a.png"
    assert (media / "b.mp4").read_bytes() == b"b.mp4"
    assert [p for p in recorder.percents(BackupCategory.MEDIA) if p > 0] == [50.0, 100.0]


@pytest.mark.asyncio
async def test_every_category_starts_at_zero(orchestrator, hubs, recorder, tmp_path, credentials):
    add_assets(hubs)

    await orchestrator.run(make_request(tmp_path, credentials, BackupCategory.MEDIA))

    first_five = recorder.events[:5]
    assert {event.category for event in first_five} == set(BackupCategory.members())
    assert all(event.percent == 0.0 for event in first_five)


@pytest.mark.asyncio
async def test_empty_rooms_backup(orchestrator, hubs, recorder, tmp_path, credentials):
    hubs.add_listing("rooms", [], filter="created")

    result = await orchestrator.execute_backup(make_request(tmp_path, credentials, BackupCategory.ROOMS))

    assert result.is_successful
    assert recorder.percents(BackupCategory.ROOMS)
    assert all(p == 0.0 for p in recorder.percents(BackupCategory.ROOMS))


@pytest.mark.asyncio
async def test_unrequested_categories_do_not_fail_the_run(orchestrator, hubs, tmp_path, credentials):
    add_assets(hubs, "a.png")

    result = await orchestrator.execute_backup(make_request(tmp_path, credentials, BackupCategory.MEDIA))

    assert set(result.categories) == set(BackupCategory.members())
    assert all(category.success for category in result.categories.values())
    assert sum(hubs.calls[url] for url in hubs.calls if "/projects" in url) == 0


@pytest.mark.asyncio
async def test_failed_category_fails_the_run(orchestrator, hubs, tmp_path, credentials):
    add_assets(hubs, "a.png")

    ok = await orchestrator.run(
        make_request(tmp_path, credentials, BackupCategory.MEDIA | BackupCategory.BLENDER)
    )

    assert ok is False
    assert (tmp_path / "hubs.test" / "user@example.com" / "media" / "a.png").exists()


@pytest.mark.asyncio
async def test_second_run_skips_existing_downloads(orchestrator, hubs, tmp_path, credentials):
    add_assets(hubs, "a.png", "b.png")
    request = make_request(tmp_path, credentials, BackupCategory.MEDIA)

    assert await orchestrator.run(request)
    media = tmp_path / "hubs.test" / "user@example.com" / "media"
    snapshot = {path.name: path.read_bytes() for path in media.iterdir()}
    assert await orchestrator.run(request)

    assert {path.name: path.read_bytes() for path in media.iterdir()} == snapshot
    assert hubs.calls[f"{CDN}/a.png"] == 1
    assert hubs.calls[f"{CDN}/b.png"] == 1


@pytest.mark.asyncio
async def test_override_downloads_again(orchestrator, hubs, tmp_path, credentials):
    add_assets(hubs, "a.png")

    assert await orchestrator.run(make_request(tmp_path, credentials, BackupCategory.MEDIA))
    assert await orchestrator.run(make_request(tmp_path, credentials, BackupCategory.MEDIA, override=True))

    assert hubs.calls[f"{CDN}/a.png"] == 2


@pytest.mark.asyncio
async def test_log_file_is_truncated_per_run(orchestrator, hubs, tmp_path, credentials):
    add_assets(hubs, "a.png")
    log_path = get_log_path(tmp_path, credentials)
    log_path.parent.mkdir(parents=True)
    log_path.write_text("previous run\n")

    await orchestrator.run(make_request(tmp_path, credentials, BackupCategory.MEDIA))

    content = log_path.read_text(encoding="utf-8")
    assert "previous run" not in content
    assert "Backup finished" in content


@pytest.mark.asyncio
async def test_output_directory_failure_aborts_run(tmp_path, credentials):
    (tmp_path / "hubs.test").write_text("a file where a directory should be")
    catalog_factory = MagicMock()
    orchestrator = BackupOrchestrator(catalog_factory=catalog_factory)

    ok = await orchestrator.run(make_request(tmp_path, credentials, BackupCategory.all()))

    assert ok is False
    catalog_factory.assert_not_called()


@pytest.mark.asyncio
async def test_cancel_during_run_fails_the_result(orchestrator, hubs, recorder, tmp_path, credentials):
    add_assets(hubs, "a.png", "b.png", "c.png")

    def cancel_after_first(event):
        recorder(event)
        if event.category == BackupCategory.MEDIA and event.percent > 0:
            orchestrator.cancel()

    orchestrator.config.progress_callback = cancel_after_first
    result = await orchestrator.execute_backup(make_request(tmp_path, credentials, BackupCategory.MEDIA))

    assert result.cancelled
    assert not result.is_successful
    assert result.categories[BackupCategory.MEDIA].processed_items == 1
    assert [p for p in recorder.percents(BackupCategory.MEDIA) if p > 0] == [pytest.approx(100 / 3)]


@pytest.mark.asyncio
async def test_new_run_resets_cancellation(orchestrator, hubs, tmp_path, credentials):
    add_assets(hubs, "a.png")
    orchestrator.cancel()

    assert await orchestrator.run(make_request(tmp_path, credentials, BackupCategory.MEDIA))


def test_cancel_without_active_backup_logs_warning():
    orchestrator = BackupOrchestrator()

    with patch("hubs_backup.core.orchestrator.logger") as mock_logger:
        orchestrator.cancel()

    mock_logger.warning.assert_called_with("No active backup to cancel")


@pytest.mark.asyncio
async def test_categories_run_concurrently(tmp_path, credentials):
    both_started = asyncio.Event()
    started = []

    async def wait_for_sibling():
        started.append(1)
        if len(started) == 2:
            both_started.set()
        await asyncio.wait_for(both_started.wait(), timeout=1)
        return []

    catalog = MagicMock()
    catalog.__aenter__ = AsyncMock(return_value=catalog)
    catalog.__aexit__ = AsyncMock(return_value=None)
    catalog.list_rooms = AsyncMock(side_effect=wait_for_sibling)
    catalog.list_assets = AsyncMock(side_effect=wait_for_sibling)
    orchestrator = BackupOrchestrator(catalog_factory=lambda credentials, cfg: catalog)

    ok = await orchestrator.run(
        make_request(tmp_path, credentials, BackupCategory.ROOMS | BackupCategory.MEDIA)
    )

    assert ok is True
    assert len(started) == 2


@pytest.mark.asyncio
async def test_supported_categories_probe(orchestrator, hubs, credentials):
    hubs.add_json(f"{API}/projects", {"projects": []})
    hubs.add_listing("assets", [], next_cursor=5)
    hubs.add_listing("rooms", [], filter="created")
    hubs.add_listing("avatars", [{"id": "av1"}])

    supported = await orchestrator.get_supported_categories(credentials)

    assert supported == BackupCategory.SCENES | BackupCategory.MEDIA | BackupCategory.ROOMS | BackupCategory.AVATARS
    assert not supported & BackupCategory.BLENDER
    assert hubs.calls[hubs.media_search("assets", cursor=5)] == 0


@pytest.mark.asyncio
async def test_non_listing_body_is_not_supported(orchestrator, hubs, credentials):
    hubs.add_json(f"{API}/projects", {"projects": []})
    hubs.add_json(f"{API}/scenes/projectless", {"scenes": []})
    hubs.add_json(hubs.media_search("rooms", filter="created"), {"error": "unknown source"})
    hubs.add_listing("assets", [])
    hubs.add_json(hubs.media_search("avatars"), {"entries": None, "meta": {}})

    supported = await orchestrator.get_supported_categories(credentials)

    assert supported == BackupCategory.SCENES | BackupCategory.BLENDER | BackupCategory.MEDIA


@pytest.mark.asyncio
async def test_non_listing_body_fails_the_run(orchestrator, hubs, tmp_path, credentials):
    hubs.add_json(hubs.media_search("rooms", filter="created"), {"error": "unknown source"})

    result = await orchestrator.execute_backup(make_request(tmp_path, credentials, BackupCategory.ROOMS))

    assert not result.is_successful
    assert not result.categories[BackupCategory.ROOMS].success
