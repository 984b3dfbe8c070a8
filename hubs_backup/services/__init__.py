"""
Service layer for Hubs Backup: catalog access and asset downloads.
"""

from .catalog_api import CatalogAPIService
from .download import DownloadService, file_name_from_url

__all__ = [
    "CatalogAPIService",
    "DownloadService",
    "file_name_from_url",
]
