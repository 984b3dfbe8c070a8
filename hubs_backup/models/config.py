"""
Configuration models for Hubs Backup runs.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from .backup import ProgressEvent


@dataclass
class BackupConfig:
    """
    Unified configuration for backup runs.

    Controls transport behavior of the catalog client and asset fetcher
    and how fetched documents are post-processed.
    """

    # Transport settings
    chunk_size: int = 65536
    timeout: Optional[float] = None  # None waits forever on a stalled connection
    verify_ssl: bool = True
    user_agent: str = "hubs-backup/0.1"

    # Document settings
    rewrite_local_references: bool = False

    # Progress reporting
    progress_callback: Optional[Callable[[ProgressEvent], None]] = None

    def __post_init__(self) -> None:
        if self.chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be positive")


__all__ = [
    "BackupConfig",
]
