"""
Services package for the statement import system.
"""

from .import_config import ImportConfig
from .import_repository import ImportRepository, InMemoryImportRepository
from .import_service import FileImportService, ProgressTracker

__all__ = [
    'ImportConfig',
    'ImportRepository',
    'InMemoryImportRepository',
    'FileImportService',
    'ProgressTracker',
]
