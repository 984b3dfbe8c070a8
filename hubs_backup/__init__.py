"""
Hubs Backup: export a Hubs account (scenes, avatars, rooms and media) to a
self-contained local directory tree.
"""

from .interfaces.api import HubsBackup, account_id_from_token
from .models import (
    BackupCategory, BackupConfig, BackupRequest, BackupResult, CategoryResult,
    Credentials, ProgressEvent
)

__version__ = "0.1.0"

__all__ = [
    "HubsBackup",
    "account_id_from_token",
    "BackupCategory",
    "BackupConfig",
    "BackupRequest",
    "BackupResult",
    "CategoryResult",
    "Credentials",
    "ProgressEvent",
    "__version__",
]
