"""
Backup domain models for Hubs Backup.

This module contains data classes and enums representing backup requests,
account credentials, progress events and per-category results.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import IntFlag
from pathlib import Path
from typing import Dict, Optional


class BackupCategory(IntFlag):
    """Bit flags for the independent export streams."""

    AVATARS = 1 << 0
    SCENES = 1 << 1
    BLENDER = 1 << 2
    ROOMS = 1 << 3
    MEDIA = 1 << 4

    @classmethod
    def all(cls) -> "BackupCategory":
        return cls.AVATARS | cls.SCENES | cls.BLENDER | cls.ROOMS | cls.MEDIA

    @classmethod
    def members(cls):
        """Single-bit categories in a fixed order."""
        return [cls.AVATARS, cls.SCENES, cls.BLENDER, cls.ROOMS, cls.MEDIA]

    @classmethod
    def from_names(cls, names) -> "BackupCategory":
        result = cls(0)
        for name in names:
            try:
                result |= cls[name.strip().upper()]
            except KeyError:
                raise ValueError(f"Unknown backup category: {name}") from None
        return result

    @property
    def label(self) -> str:
        return (self.name or "").lower()


@dataclass(frozen=True)
class Credentials:
    """Account credentials produced by the authentication handshake."""

    host: str
    email: str
    token: str
    account_id: str
    port: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.host:
            raise ValueError("Host is required")
        if not self.email:
            raise ValueError("Email is required")

    @property
    def netloc(self) -> str:
        return f"{self.host}:{self.port}" if self.port else self.host


@dataclass(frozen=True)
class BackupRequest:
    """Immutable specification of one backup run."""

    directory: Path
    categories: BackupCategory
    credentials: Credentials
    override: bool = False

    # Metadata
    request_id: str = field(default_factory=lambda: f"backup_{datetime.now().strftime('%Y%m%d_%H%M%S')}")

    def __post_init__(self) -> None:
        if not self.directory:
            raise ValueError("Output directory is required")
        object.__setattr__(self, "directory", Path(self.directory))
        object.__setattr__(self, "categories", BackupCategory(self.categories))

    @property
    def output_path(self) -> Path:
        """Root of the account's export tree."""
        return self.directory / self.credentials.host / self.credentials.email

    def wants(self, category: BackupCategory) -> bool:
        return (self.categories & category) != 0


@dataclass(frozen=True)
class ProgressEvent:
    """Fractional progress of one category."""

    category: BackupCategory
    percent: float

    def __post_init__(self) -> None:
        if not 0.0 <= self.percent <= 100.0:
            raise ValueError(f"Progress out of range: {self.percent}")


@dataclass
class CategoryResult:
    """Outcome of one category exporter."""

    category: BackupCategory
    success: bool = True
    total_items: int = 0
    processed_items: int = 0
    failed_items: Dict[str, str] = field(default_factory=dict)
    cancelled: bool = False

    @property
    def percent(self) -> float:
        if self.total_items == 0:
            return 0.0
        return (self.processed_items / self.total_items) * 100.0

    def mark_failed(self, item_id: str, error: Exception) -> None:
        self.success = False
        self.failed_items[item_id] = str(error)


@dataclass
class BackupResult:
    """Aggregated outcome of a backup run."""

    request: BackupRequest
    categories: Dict[BackupCategory, CategoryResult] = field(default_factory=dict)
    cancelled: bool = False
    error_message: Optional[str] = None
    started_at: datetime = field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None

    @property
    def is_successful(self) -> bool:
        if self.cancelled or self.error_message:
            return False
        return all(result.success for result in self.categories.values())

    @property
    def duration_seconds(self) -> float:
        if self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return 0.0

    def mark_completed(self) -> None:
        self.completed_at = datetime.now()


__all__ = [
    "BackupCategory",
    "Credentials",
    "BackupRequest",
    "ProgressEvent",
    "CategoryResult",
    "BackupResult",
]
