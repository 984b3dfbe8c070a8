"""
Post-processing of fetched JSON documents that embed remote asset URLs.

Three document flavours are handled:

* project documents (Spoke ``.spoke`` archives) with an ``entities`` mapping
  whose components carry ``props.src`` asset URLs,
* asset documents (avatar glTF) whose ``images[].uri`` and ``buffers[].uri``
  point at files already downloaded next to the document,
* room objects documents (glTF) whose nodes carry
  ``extensions.HUBS_components.media.src`` asset URLs.

Failures inside a document are logged and reported through the boolean
return value; they never propagate to the exporter loop.
"""

import json
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Tuple

from ..infrastructure.error_handler import BackupError, DocumentError
from ..infrastructure.logger import logger
from ..services.download import DownloadService, file_name_from_url


def _local_name(url: Any) -> Optional[str]:
    """File name for an absolute URL, None for anything else."""
    try:
        return file_name_from_url(url)
    except ValueError:
        return None


class DocumentRewriter:
    """Discovers embedded asset URLs, downloads them and rewrites references."""

    def __init__(self, download_service: DownloadService, rewrite_local_references: bool = False):
        self.download_service = download_service
        self.rewrite_local_references = rewrite_local_references

    async def _load(self, path: Path) -> Dict[str, Any]:
        try:
            document = await self.download_service.read_json(path)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise DocumentError(f"Cannot read document {path}", e) from e

        if not isinstance(document, dict):
            raise DocumentError(f"Document {path} is not a JSON object")
        return document

    async def _fetch_embedded(self, src: Any, directory: Path, override: bool) -> Optional[str]:
        """
        Download one embedded asset next to its document.

        Returns:
            The local file name when the asset is available locally
        """
        try:
            name = file_name_from_url(src)
        except ValueError:
            if isinstance(src, str) and src and (directory / src).exists():
                return src
            logger.error(f"Media {src} is not a valid URL, skipping")
            return None

        if not name:
            logger.error(f"Media {src} is not a valid downloadable media, skipping")
            return None

        await self.download_service.fetch(src, directory / name, override)
        return name

    @staticmethod
    def _project_sources(document: Dict[str, Any]) -> Iterator[Dict[str, Any]]:
        entities = document.get("entities") or {}
        if not isinstance(entities, dict):
            raise DocumentError("'entities' is not a mapping")

        for entity in entities.values():
            for component in entity.get("components") or []:
                props = component.get("props")
                if isinstance(props, dict) and "src" in props:
                    yield props

    async def process_project_document(self, path: Path, override: bool = False) -> bool:
        """
        Download every asset referenced by a project document.

        Assets land in the document's directory. ``src`` fields are only
        rewritten when ``rewrite_local_references`` is enabled.

        Returns:
            True if the document was fully processed
        """
        path = Path(path)
        directory = path.parent
        clean = True
        changed = False

        try:
            document = await self._load(path)
            for props in self._project_sources(document):
                try:
                    name = await self._fetch_embedded(props["src"], directory, override)
                except BackupError as e:
                    logger.error(f"Project asset {props['src']} in {path.name} failed: {e}")
                    clean = False
                    continue

                if name is None:
                    clean = False
                elif self.rewrite_local_references and props["src"] != name:
                    props["src"] = name
                    changed = True

            if changed:
                await self.download_service.write_json(path, document)

        except (BackupError, OSError, AttributeError, TypeError) as e:
            logger.error(f"Failed to process project document {path}: {e}")
            return False

        return clean

    async def rewrite_asset_document(self, path: Path) -> bool:
        """
        Point ``images`` and ``buffers`` URIs at the sibling files.

        Each absolute URI is replaced by its final path segment; relative and
        data URIs are left untouched, so rewriting twice is a no-op.

        Returns:
            True if the document was rewritten
        """
        path = Path(path)

        try:
            document = await self._load(path)
            for key in ("images", "buffers"):
                for entry in document.get(key) or []:
                    if "uri" not in entry:
                        continue
                    name = _local_name(entry["uri"])
                    if name:
                        entry["uri"] = name

            await self.download_service.write_json(path, document)

        except (BackupError, OSError, AttributeError, TypeError) as e:
            logger.error(f"Failed to rewrite asset document {path}: {e}")
            return False

        return True

    @staticmethod
    def _media_components(document: Dict[str, Any]) -> Iterator[Tuple[int, Dict[str, Any]]]:
        for index, node in enumerate(document.get("nodes") or []):
            extensions = node.get("extensions") or {}
            components = extensions.get("HUBS_components") or {}
            media = components.get("media")
            if isinstance(media, dict):
                yield index, media

    async def process_objects_document(self, path: Path, override: bool = False) -> bool:
        """
        Download the media pinned in a room objects document.

        Invalid media URLs are logged and skipped. The document is written
        back to disk pretty printed.

        Returns:
            True if every media entry was downloaded
        """
        path = Path(path)
        directory = path.parent
        clean = True

        try:
            document = await self._load(path)
            for index, media in self._media_components(document):
                src = media.get("src")
                try:
                    name = await self._fetch_embedded(src, directory, override)
                except BackupError as e:
                    logger.error(f"Media {src} of node {index} in {path.name} failed: {e}")
                    clean = False
                    continue

                if name is None:
                    clean = False
                elif self.rewrite_local_references:
                    media["src"] = name

            await self.download_service.write_json(path, document)

        except (BackupError, OSError, AttributeError, TypeError) as e:
            logger.error(f"Failed to process objects document {path}: {e}")
            return False

        return clean


__all__ = [
    "DocumentRewriter",
]
