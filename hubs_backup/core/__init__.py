"""
Core backup engine: cancellation, document rewriting, category exporters
and the orchestrator that runs them.
"""

from .cancellation import CancellationToken
from .documents import DocumentRewriter
from .exporters import (
    CategoryExporter, SceneExporter, BlenderExporter, AvatarExporter,
    RoomExporter, MediaExporter, EXPORTERS
)
from .orchestrator import BackupOrchestrator, get_log_path, get_output_path

__all__ = [
    "CancellationToken",
    "DocumentRewriter",
    "CategoryExporter",
    "SceneExporter",
    "BlenderExporter",
    "AvatarExporter",
    "RoomExporter",
    "MediaExporter",
    "EXPORTERS",
    "BackupOrchestrator",
    "get_log_path",
    "get_output_path",
]
