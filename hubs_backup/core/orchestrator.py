"""
Orchestrator for a complete account backup: runs the requested category
exporters concurrently and aggregates their outcome.
"""

import asyncio
from pathlib import Path
from typing import Callable, List, Optional, Union

from ..infrastructure.logger import logger, configure_log_file, close_log_file
from ..models import (
    BackupCategory, BackupConfig, BackupRequest, BackupResult, CategoryResult,
    Credentials, ProgressEvent
)
from ..services import CatalogAPIService, DownloadService
from .cancellation import CancellationToken
from .documents import DocumentRewriter
from .exporters import EXPORTERS


LOG_FILE_NAME = "backup.log"

CatalogFactory = Callable[[Credentials, BackupConfig], CatalogAPIService]
DownloadFactory = Callable[[BackupConfig], DownloadService]


def get_output_path(directory: Union[str, Path], credentials: Credentials) -> Path:
    return Path(directory) / credentials.host / credentials.email


def get_log_path(directory: Union[str, Path], credentials: Credentials) -> Path:
    return get_output_path(directory, credentials) / LOG_FILE_NAME


####
##      BACKUP ORCHESTRATOR
#####
class BackupOrchestrator:
    """
    Runs backups one at a time, with cooperative cancellation and
    per-category progress reporting.
    """

    def __init__(
        self,
        config: Optional[BackupConfig] = None,
        catalog_factory: Optional[CatalogFactory] = None,
        download_factory: Optional[DownloadFactory] = None
    ):
        self.config = config or BackupConfig()
        self.catalog_factory = catalog_factory or CatalogAPIService
        self.download_factory = download_factory or DownloadService
        self.cancellation = CancellationToken()
        self._current_result: Optional[BackupResult] = None

    @property
    def is_running(self) -> bool:
        return self._current_result is not None

    def emit_progress(self, event: ProgressEvent) -> None:
        if self.config.progress_callback is not None:
            self.config.progress_callback(event)

    async def execute_backup(self, request: BackupRequest) -> BackupResult:
        """
        Execute a complete backup asynchronously.

        Args:
            request: Backup request

        Returns:
            BackupResult with the outcome of every category
        """
        self.cancellation.reset()

        result = BackupResult(request=request)
        output_path = request.output_path

        try:
            configure_log_file(output_path / LOG_FILE_NAME)
            output_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Error creating the output folder {output_path}: {e}")
            result.error_message = str(e)
            result.mark_completed()
            return result

        logger.info(
            f"Starting backup {request.request_id} of {request.credentials.email}"
            f"@{request.credentials.host} into {output_path}"
        )

        for category in BackupCategory.members():
            self.emit_progress(ProgressEvent(category, 0.0))

        self._current_result = result
        try:
            async with self.catalog_factory(request.credentials, self.config) as catalog, \
                    self.download_factory(self.config) as downloads:
                rewriter = DocumentRewriter(downloads, self.config.rewrite_local_references)
                exporters = [
                    EXPORTERS[category](
                        catalog,
                        downloads,
                        rewriter,
                        output_path,
                        override=request.override,
                        cancellation=self.cancellation,
                        progress_callback=self.emit_progress,
                    )
                    for category in BackupCategory.members()
                    if request.wants(category)
                ]

                outcomes = await asyncio.gather(
                    *(exporter.export() for exporter in exporters),
                    return_exceptions=True
                )

            for exporter, outcome in zip(exporters, outcomes):
                if isinstance(outcome, BaseException):
                    logger.error(f"Backup of {exporter.category.label} crashed: {outcome}")
                    outcome = CategoryResult(category=exporter.category, success=False)
                result.categories[exporter.category] = outcome

            for category in BackupCategory.members():
                result.categories.setdefault(category, CategoryResult(category=category))

            result.cancelled = self.cancellation.is_cancelled
            result.mark_completed()

            logger.info(
                f"Backup finished in {result.duration_seconds:.1f}s: "
                f"{'succeeded' if result.is_successful else 'failed'}"
                f"{' (cancelled)' if result.cancelled else ''}"
            )
            return result

        except Exception as e:
            logger.error(f"Backup failed: {e}")
            result.error_message = str(e)
            result.mark_completed()
            return result

        finally:
            self._current_result = None
            close_log_file()

    async def run(self, request: BackupRequest) -> bool:
        """Run a backup and report whether every requested category succeeded."""
        result = await self.execute_backup(request)
        return result.is_successful

    def cancel(self) -> None:
        """
        Ask the running backup to stop before its next item.

        Returns immediately; in-flight downloads are allowed to finish.
        """
        self.cancellation.cancel()
        if self._current_result is None:
            logger.warning("No active backup to cancel")
            return
        logger.info("Backup cancelled by user")

    async def get_supported_categories(self, credentials: Credentials) -> BackupCategory:
        """
        Probe which categories the remote instance serves for these credentials.

        Each category is probed with one side-effect free listing call; a
        failing probe only clears that category's bit.
        """
        supported = BackupCategory(0)

        async with self.catalog_factory(credentials, self.config) as catalog:
            probes = {
                BackupCategory.SCENES: catalog.get_projects(),
                BackupCategory.BLENDER: catalog.get_projectless_scenes(),
                BackupCategory.ROOMS: catalog.list_rooms(probe=True),
                BackupCategory.MEDIA: catalog.list_assets(probe=True),
                BackupCategory.AVATARS: catalog.list_avatars(probe=True),
            }
            outcomes: List[object] = await asyncio.gather(*probes.values(), return_exceptions=True)

        for category, outcome in zip(probes, outcomes):
            if isinstance(outcome, BaseException):
                logger.debug(f"{category.label} is not supported: {outcome}")
                continue
            supported |= category

        logger.info(f"Supported categories: {supported!r}")
        return supported


__all__ = [
    "BackupOrchestrator",
    "get_output_path",
    "get_log_path",
    "LOG_FILE_NAME",
]
