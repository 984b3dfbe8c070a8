"""
High level Python API for Hubs Backup.

Host applications (the CLI, a desktop UI) drive backups through
`HubsBackup` and receive `ProgressEvent`s through the configured callback.
"""

import base64
import json
import logging
from pathlib import Path
from typing import Callable, Iterable, Optional, Union

from ..core.orchestrator import BackupOrchestrator, get_log_path
from ..infrastructure.logger import logger
from ..models import (
    BackupCategory, BackupConfig, BackupRequest, BackupResult, Credentials,
    ProgressEvent
)


def account_id_from_token(token: str) -> str:
    """
    Read the account id (``sub`` claim) from a bearer JWT.

    The signature is not verified; the token is only ever sent back to the
    server that issued it.
    """
    try:
        payload = token.split(".")[1]
        payload += "=" * (-len(payload) % 4)
        claims = json.loads(base64.urlsafe_b64decode(payload))
        return str(claims["sub"])
    except (IndexError, ValueError, KeyError, TypeError) as e:
        raise ValueError("Token does not carry an account id") from e


class HubsBackup:
    """
    Entry point for backing up a Hubs account.

    Example:
        >>> backup = HubsBackup(verbose=True)
        >>> ok = await backup.start_backup(Path("out"), credentials, BackupCategory.MEDIA)
    """

    def __init__(
        self,
        config: Optional[BackupConfig] = None,
        verbose: bool = False,
        orchestrator: Optional[BackupOrchestrator] = None
    ):
        self.config = config or BackupConfig()
        self.verbose = verbose
        self.orchestrator = orchestrator or BackupOrchestrator(self.config)
        self.set_verbose(verbose)

    def set_verbose(self, verbose: bool) -> None:
        self.verbose = verbose
        logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    def on_progress(self, callback: Optional[Callable[[ProgressEvent], None]]) -> None:
        """Register the callback receiving per-category progress events."""
        self.config.progress_callback = callback
        self.orchestrator.config.progress_callback = callback

    def build_request(
        self,
        directory: Union[str, Path],
        credentials: Credentials,
        categories: Union[BackupCategory, Iterable[str]] = BackupCategory.all(),
        override: bool = False
    ) -> BackupRequest:
        if not isinstance(categories, BackupCategory):
            categories = BackupCategory.from_names(categories)
        return BackupRequest(
            directory=Path(directory),
            categories=categories,
            credentials=credentials,
            override=override,
        )

    async def backup(self, request: BackupRequest) -> BackupResult:
        """Run a backup and return the detailed per-category result."""
        return await self.orchestrator.execute_backup(request)

    async def start_backup(
        self,
        directory: Union[str, Path],
        credentials: Credentials,
        categories: Union[BackupCategory, Iterable[str]] = BackupCategory.all(),
        override: bool = False
    ) -> bool:
        """
        Back up the requested categories of an account.

        Returns:
            True if every requested category succeeded and the run was not cancelled
        """
        request = self.build_request(directory, credentials, categories, override)
        result = await self.backup(request)
        return result.is_successful

    def cancel_backup(self) -> None:
        """Request cancellation of the running backup and return immediately."""
        self.orchestrator.cancel()

    async def get_supported_categories(self, credentials: Credentials) -> BackupCategory:
        return await self.orchestrator.get_supported_categories(credentials)

    @staticmethod
    def get_log_path(directory: Union[str, Path], credentials: Credentials) -> Path:
        return get_log_path(directory, credentials)


__all__ = [
    "HubsBackup",
    "account_id_from_token",
]
