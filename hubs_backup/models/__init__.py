"""
Core data models API surface for Hubs Backup.

This file re-exports model classes from domain-specific modules so that
callers can import them as `from hubs_backup.models import X`.
"""

from .catalog import (
    Scene,
    Project,
    ProjectScene,
    AvatarListing,
    AvatarFiles,
    Avatar,
    Hub,
    MediaAsset,
    CatalogPage,
)
from .backup import (
    BackupCategory,
    Credentials,
    BackupRequest,
    ProgressEvent,
    CategoryResult,
    BackupResult,
)
from .config import BackupConfig

__all__ = [
    # Catalog models
    "Scene",
    "Project",
    "ProjectScene",
    "AvatarListing",
    "AvatarFiles",
    "Avatar",
    "Hub",
    "MediaAsset",
    "CatalogPage",
    # Backup models
    "BackupCategory",
    "Credentials",
    "BackupRequest",
    "ProgressEvent",
    "CategoryResult",
    "BackupResult",
    # Config models
    "BackupConfig",
]
