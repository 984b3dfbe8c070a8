"""
Category exporters: one pipeline per backup category.

Every exporter has the same shape: create its category directory, list the
account's items, then process them one by one in listing order: build the
item's record from its raw listing entry, write its metadata and download
its files. A failing item marks the category
as failed without stopping the loop; the cancellation token is checked
before each item starts.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, ClassVar, Dict, Generic, List, Optional, Sequence, Type, TypeVar

from ..infrastructure.error_handler import BackupError
from ..infrastructure.logger import logger
from ..models import (
    Avatar, AvatarListing, BackupCategory, CategoryResult, Hub, MediaAsset,
    ProgressEvent, Project, Scene
)
from ..services import CatalogAPIService, DownloadService
from .cancellation import CancellationToken
from .documents import DocumentRewriter


T = TypeVar("T")

ProgressCallback = Callable[[ProgressEvent], None]


def _lookup(record: Any, field_path: str) -> Optional[str]:
    value = record
    for part in field_path.split("."):
        value = getattr(value, part, None)
        if value is None:
            return None
    return value


####
##      BASE EXPORTER
#####
class CategoryExporter(ABC, Generic[T]):
    """
    Template for a category export stream.

    Subclasses declare the category, its output directory name, the record
    type built from each listing entry and the ordered table of URL-bearing
    fields to download for each item.
    """

    category: ClassVar[BackupCategory]
    directory_name: ClassVar[str]
    record_type: ClassVar[Any]
    id_key: ClassVar[str] = "id"
    asset_fields: ClassVar[Sequence[str]] = ()

    def __init__(
        self,
        catalog: CatalogAPIService,
        downloads: DownloadService,
        rewriter: DocumentRewriter,
        output_path: Path,
        override: bool = False,
        cancellation: Optional[CancellationToken] = None,
        progress_callback: Optional[ProgressCallback] = None
    ):
        self.catalog = catalog
        self.downloads = downloads
        self.rewriter = rewriter
        self.output_path = Path(output_path)
        self.override = override
        self.cancellation = cancellation or CancellationToken()
        self.progress_callback = progress_callback

    @property
    def category_dir(self) -> Path:
        return self.output_path / self.directory_name

    @abstractmethod
    async def list_items(self) -> List[Dict[str, Any]]:
        """Enumerate the raw catalog entries of this category."""

    def entry_id(self, entry: Any, index: int) -> str:
        """Identifier used in log messages and failure reports."""
        if isinstance(entry, dict) and entry.get(self.id_key):
            return str(entry[self.id_key])
        return f"#{index}"

    def parse_item(self, entry: Dict[str, Any]) -> T:
        return self.record_type.from_dict(entry)

    @abstractmethod
    async def process_item(self, item: T) -> None:
        """Export a single item; raise on failure."""

    async def prepare(self, entries: List[Dict[str, Any]]) -> None:
        """Hook run once after listing, before the first item."""

    def emit_progress(self, percent: float) -> None:
        if self.progress_callback is not None:
            self.progress_callback(ProgressEvent(self.category, percent))

    async def download_fields(self, record: Any, directory: Path,
                              fields: Optional[Sequence[str]] = None) -> Dict[str, Path]:
        """
        Download every non-empty URL field of ``record`` into ``directory``.

        Args:
            record: Catalog record carrying the URLs
            directory: Destination directory
            fields: Dotted attribute paths, defaults to ``asset_fields``

        Returns:
            Mapping of field path to the local file, for fields that yielded one
        """
        downloaded: Dict[str, Path] = {}
        for field_path in (self.asset_fields if fields is None else fields):
            url = _lookup(record, field_path)
            if not url:
                continue
            path = await self.downloads.fetch_into(url, directory, self.override)
            if path is not None:
                downloaded[field_path] = path
        return downloaded

    async def item_directory(self, item_id: str) -> Path:
        return await self.downloads.ensure_directory(self.category_dir / item_id)

    async def write_metadata(self, directory: Path, name: str, raw: Any) -> Path:
        path = directory / f"{name}.json"
        await self.downloads.write_json(path, raw)
        return path

    async def export(self) -> CategoryResult:
        """
        Run the whole category.

        Returns:
            CategoryResult whose ``success`` is False if setup or any item failed
        """
        result = CategoryResult(category=self.category)
        self.emit_progress(0.0)

        try:
            await self.downloads.ensure_directory(self.category_dir)
            entries = await self.list_items()
            await self.prepare(entries)
        except Exception as e:
            logger.error(f"Backup of {self.category.label} failed: {e}")
            result.success = False
            return result

        result.total_items = len(entries)
        logger.info(f"Backing up {result.total_items} {self.category.label} items")

        for index, entry in enumerate(entries):
            if self.cancellation.is_cancelled:
                logger.info(f"Backup of {self.category.label} cancelled")
                result.cancelled = True
                break

            item_id = self.entry_id(entry, index)
            try:
                await self.process_item(self.parse_item(entry))
            except Exception as e:
                logger.error(f"{self.category.label} item {item_id} failed: {e}")
                result.mark_failed(item_id, e)

            result.processed_items += 1
            self.emit_progress(result.percent)

        logger.info(
            f"Backup of {self.category.label} finished: "
            f"{result.processed_items - len(result.failed_items)}/{result.total_items} succeeded"
        )
        return result


####
##      SCENES (SPOKE PROJECTS)
#####
class SceneExporter(CategoryExporter[Project]):
    """Spoke projects, their archives and the scenes published from them."""

    category = BackupCategory.SCENES
    directory_name = "spoke"
    record_type = Project
    id_key = "project_id"
    scene_fields: ClassVar[Sequence[str]] = ("model_url", "screenshot_url")

    async def list_items(self) -> List[Dict[str, Any]]:
        return await self.catalog.get_projects()

    @staticmethod
    def archive_copy_name(project: Project) -> str:
        name = project.name.replace("/", "_").replace("\\", "_") or project.project_id
        return f"{name}.spoke"

    async def process_item(self, item: Project) -> None:
        project_scene = await self.catalog.get_project_scene(item.project_id)
        project_dir = await self.item_directory(item.project_id)
        await self.write_metadata(project_dir, item.project_id, item.raw)

        if item.project_url:
            archive = await self.downloads.fetch_into(item.project_url, project_dir, self.override)
            if archive is not None:
                await self.downloads.copy_file(
                    archive, project_dir / self.archive_copy_name(item), self.override
                )
                if not await self.rewriter.process_project_document(archive, self.override):
                    logger.warning(f"Project {item.project_id}: {archive.name} was only partially processed")

        await self.download_fields(item, project_dir, ("thumbnail_url",))

        scene = project_scene.resolved_scene
        if scene is None:
            logger.warning(f"Project {item.project_id} doesn't have a scene")
            return

        await self.backup_scene(scene, project_dir)

    async def backup_scene(self, scene: Scene, project_dir: Path) -> None:
        await self.write_metadata(project_dir, scene.scene_id, scene.raw)

        if scene.scene_project_url:
            document = await self.downloads.fetch_into(scene.scene_project_url, project_dir, self.override)
            if document is not None:
                if not await self.rewriter.process_project_document(document, self.override):
                    logger.warning(f"Scene {scene.scene_id}: {document.name} was only partially processed")

        if not scene.model_url:
            raise BackupError(f"Scene {scene.scene_id} has no model URL")

        downloaded = await self.download_fields(scene, project_dir, self.scene_fields)
        model = downloaded.get("model_url")
        if model is not None:
            await self.downloads.copy_file(model, model.with_name(f"{model.stem}.glb"), self.override)


####
##      BLENDER (PROJECTLESS SCENES)
#####
class BlenderExporter(CategoryExporter[Scene]):
    """Scenes published straight from a glb, without a Spoke project."""

    category = BackupCategory.BLENDER
    directory_name = "blender"
    record_type = Scene
    id_key = "scene_id"
    asset_fields = ("model_url", "screenshot_url")

    async def list_items(self) -> List[Dict[str, Any]]:
        return await self.catalog.get_projectless_scenes()

    async def process_item(self, item: Scene) -> None:
        scene_dir = await self.item_directory(item.scene_id)
        await self.write_metadata(scene_dir, item.scene_id, item.raw)

        if not item.model_url:
            raise BackupError(f"Scene {item.scene_id} has no model URL")

        await self.download_fields(item, scene_dir)


####
##      AVATARS
#####
class AvatarExporter(CategoryExporter[AvatarListing]):
    """Avatars with their texture maps, buffers and glTF documents."""

    category = BackupCategory.AVATARS
    directory_name = "avatars"
    record_type = AvatarListing
    asset_fields = (
        "files.base_map",
        "files.emissive_map",
        "files.normal_map",
        "files.orm_map",
        "files.bin",
        "files.gltf",
        "files.thumbnail",
    )
    gltf_fields: ClassVar[Sequence[str]] = ("gltf_url", "base_gltf_url")

    async def list_items(self) -> List[Dict[str, Any]]:
        return await self.catalog.list_avatars()

    async def process_item(self, item: AvatarListing) -> None:
        avatar_dir = await self.item_directory(item.id)
        avatar: Avatar = await self.catalog.get_avatar(item.id)
        await self.write_metadata(avatar_dir, avatar.avatar_id, avatar.raw)

        await self.download_fields(avatar, avatar_dir)

        for field_path in self.gltf_fields:
            downloaded = await self.download_fields(avatar, avatar_dir, (field_path,))
            if field_path in downloaded:
                document = downloaded[field_path]
                if not await self.rewriter.rewrite_asset_document(document):
                    logger.warning(f"Avatar {avatar.avatar_id}: {document.name} was not rewritten")


####
##      ROOMS
#####
class RoomExporter(CategoryExporter[Hub]):
    """Rooms created by the account and the objects pinned in them."""

    category = BackupCategory.ROOMS
    directory_name = "rooms"
    record_type = Hub

    async def list_items(self) -> List[Dict[str, Any]]:
        return await self.catalog.list_rooms()

    async def process_item(self, item: Hub) -> None:
        hub_dir = await self.item_directory(item.id)
        await self.write_metadata(hub_dir, item.id, item.raw)

        objects_url = self.catalog.get_room_objects_url(item.id)
        objects = await self.downloads.fetch_into(objects_url, hub_dir, self.override)
        if objects is not None:
            if not await self.rewriter.process_objects_document(objects, self.override):
                logger.warning(f"Room {item.id}: {objects.name} was only partially processed")


####
##      MEDIA
#####
class MediaExporter(CategoryExporter[MediaAsset]):
    """Uploaded media, flattened into one directory with an index file."""

    category = BackupCategory.MEDIA
    directory_name = "media"
    record_type = MediaAsset
    asset_fields = ("url",)
    index_name: ClassVar[str] = "assets"

    async def list_items(self) -> List[Dict[str, Any]]:
        return await self.catalog.list_assets()

    async def prepare(self, entries: List[Dict[str, Any]]) -> None:
        await self.write_metadata(self.category_dir, self.index_name, entries)

    async def process_item(self, item: MediaAsset) -> None:
        if not item.url:
            raise BackupError(f"Media {item.id} has no URL")
        try:
            await self.download_fields(item, self.category_dir)
        except ValueError as e:
            raise BackupError(f"Media {item.url} is not a valid URL", e) from e


EXPORTERS: Dict[BackupCategory, Type[CategoryExporter]] = {
    exporter.category: exporter
    for exporter in (AvatarExporter, SceneExporter, BlenderExporter, RoomExporter, MediaExporter)
}


__all__ = [
    "CategoryExporter",
    "SceneExporter",
    "BlenderExporter",
    "AvatarExporter",
    "RoomExporter",
    "MediaExporter",
    "EXPORTERS",
]
