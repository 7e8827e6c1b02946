"""Sheaf Core - formats, i18n resolution, and collection configuration."""

from sheaf_core.config import (
    CollectionConfigCache,
    FileConfig,
    build_file_config,
    load_site_config,
)
from sheaf_core.content import flatten, unflatten
from sheaf_core.digest import combined_sha, git_blob_sha
from sheaf_core.errors import CacheIOError, ConfigError, FormatError, ParseError, SheafError
from sheaf_core.formats import FormatDescriptor, parse, serialize
from sheaf_core.i18n import (
    DEFAULT_LOCALE_KEY,
    I18nConfigResolver,
    get_locale_path,
    resolve_i18n_config,
)
from sheaf_core.models import (
    Asset,
    AssetFolder,
    CachedFileRecord,
    Collection,
    CollectionFile,
    CommitMeta,
    Entry,
    EntryFolder,
    FileListItem,
    I18nConfig,
    I18nOptions,
    LocalizedEntry,
    RawFile,
    SiteConfig,
)
from sheaf_core.slug import extract_slug, normalize_slug

__all__ = [
    # config
    "CollectionConfigCache",
    "FileConfig",
    "build_file_config",
    "load_site_config",
    # formats
    "FormatDescriptor",
    "parse",
    "serialize",
    # i18n
    "DEFAULT_LOCALE_KEY",
    "I18nConfigResolver",
    "get_locale_path",
    "resolve_i18n_config",
    # errors
    "SheafError",
    "ParseError",
    "FormatError",
    "CacheIOError",
    "ConfigError",
    # models
    "Asset",
    "AssetFolder",
    "CachedFileRecord",
    "Collection",
    "CollectionFile",
    "CommitMeta",
    "Entry",
    "EntryFolder",
    "FileListItem",
    "I18nConfig",
    "I18nOptions",
    "LocalizedEntry",
    "RawFile",
    "SiteConfig",
    # helpers
    "combined_sha",
    "git_blob_sha",
    "flatten",
    "unflatten",
    "extract_slug",
    "normalize_slug",
]

__version__ = "0.1.0"
