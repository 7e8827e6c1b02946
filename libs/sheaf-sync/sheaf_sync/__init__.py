"""Sheaf Sync - classification, caching, and entry normalization."""

from sheaf_sync.assets import parse_asset_files
from sheaf_sync.backend import FetchedFile, LastCommit, LocalBackend, RepositoryBackend
from sheaf_sync.cache import JsonFileStore, MemoryStore, PersistentStore, SyncCache
from sheaf_sync.classify import FileList, create_file_list
from sheaf_sync.folders import get_all_asset_folders, get_all_entry_folders
from sheaf_sync.loader import ContentLoader, SyncResult
from sheaf_sync.normalize import EntryNormalizer, prepare_entries

__all__ = [
    "ContentLoader",
    "SyncResult",
    # classification
    "FileList",
    "create_file_list",
    "get_all_asset_folders",
    "get_all_entry_folders",
    # cache
    "JsonFileStore",
    "MemoryStore",
    "PersistentStore",
    "SyncCache",
    # normalization
    "EntryNormalizer",
    "prepare_entries",
    "parse_asset_files",
    # backends
    "FetchedFile",
    "LastCommit",
    "LocalBackend",
    "RepositoryBackend",
]
