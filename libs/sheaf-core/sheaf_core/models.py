"""Core data models for Sheaf."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

I18nStructure = Literal[
    "single_file", "multiple_files", "multiple_folders", "multiple_folders_i18n_root"
]
FileFormat = Literal[
    "yml",
    "yaml",
    "toml",
    "json",
    "frontmatter",
    "yaml-frontmatter",
    "toml-frontmatter",
    "json-frontmatter",
]
FileType = Literal["entry", "asset", "config"]

SINGLETONS_COLLECTION_NAME = "_singletons"


# --- Site configuration (admin/config.yml) ---


class CanonicalSlugOptions(BaseModel):
    """Front matter key linking localized files of the same entry."""

    key: str | None = None
    value: str | None = None


class I18nOptions(BaseModel):
    """i18n options as written at site, collection or file level."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    structure: I18nStructure = "single_file"
    locales: list[str] = Field(default_factory=list)
    default_locale: str | None = None
    initial_locales: list[str] | Literal["all", "default"] | None = None
    save_all_locales: bool = True
    canonical_slug: CanonicalSlugOptions | None = None
    omit_default_locale_from_filename: bool = False


class FieldDef(BaseModel):
    """A content field definition. Only the keys Sheaf reads are typed."""

    model_config = ConfigDict(extra="allow")

    name: str
    widget: str = "string"
    root: bool = False


class IndexFileOptions(BaseModel):
    """Options for the special `_index` file of an entry collection."""

    model_config = ConfigDict(extra="allow")

    name: str = "_index"


class SlugOptions(BaseModel):
    """Slug normalization options."""

    encoding: Literal["unicode", "ascii"] = "unicode"
    clean_accents: bool = False
    sanitize_replacement: str = "-"


class CollectionFile(BaseModel):
    """A single named file inside a file collection (or a singleton)."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    name: str
    file: str
    label: str | None = None
    format: FileFormat | None = None
    extension: str | None = None
    frontmatter_delimiter: str | list[str] | None = None
    i18n: bool | I18nOptions | None = None
    fields: list[FieldDef] = Field(default_factory=list)
    media_folder: str | None = None
    public_folder: str | None = None


class Collection(BaseModel):
    """An entry collection (`folder`) or a file collection (`files`)."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    name: str
    label: str | None = None
    folder: str | None = None
    files: list[CollectionFile] | None = None
    path: str | None = None
    extension: str | None = None
    format: FileFormat | None = None
    frontmatter_delimiter: str | list[str] | None = None
    i18n: bool | I18nOptions | None = None
    index_file: bool | IndexFileOptions | None = None
    identifier_field: str = "title"
    fields: list[FieldDef] = Field(default_factory=list)
    media_folder: str | None = None
    public_folder: str | None = None

    @property
    def is_file_collection(self) -> bool:
        return self.files is not None

    def get_file(self, name: str) -> CollectionFile | None:
        for file in self.files or []:
            if file.name == name:
                return file
        return None


class SiteConfig(BaseModel):
    """Site configuration (in admin/config.yml)."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    media_folder: str | None = None
    public_folder: str | None = None
    i18n: I18nOptions | None = None
    collections: list[Collection] = Field(default_factory=list)
    singletons: list[CollectionFile] | None = None
    slug: SlugOptions = Field(default_factory=SlugOptions)

    def get_collection(self, name: str) -> Collection | None:
        """Look up a collection by name, including the synthetic singleton collection."""
        if name == SINGLETONS_COLLECTION_NAME:
            return self.singletons_collection
        for collection in self.collections:
            if collection.name == name:
                return collection
        return None

    @property
    def singletons_collection(self) -> Collection | None:
        if not self.singletons:
            return None
        return Collection(name=SINGLETONS_COLLECTION_NAME, files=self.singletons, i18n=True)


# --- Resolved i18n configuration ---


class CanonicalSlug(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str = "translationKey"
    value: str = "{{slug}}"


class I18nConfig(BaseModel):
    """Effective i18n configuration for one collection or collection file."""

    model_config = ConfigDict(frozen=True)

    i18n_enabled: bool = False
    structure: I18nStructure = "single_file"
    all_locales: tuple[str, ...] = ("_default",)
    default_locale: str = "_default"
    initial_locales: tuple[str, ...] = ("_default",)
    save_all_locales: bool = True
    canonical_slug: CanonicalSlug = Field(default_factory=CanonicalSlug)
    omit_default_locale_from_filename: bool = False

    @property
    def is_single_file(self) -> bool:
        return self.structure == "single_file"

    @property
    def is_multi_file(self) -> bool:
        return self.structure == "multiple_files"

    @property
    def is_multi_folder(self) -> bool:
        return self.structure == "multiple_folders"

    @property
    def is_root_multi_folder(self) -> bool:
        return self.structure == "multiple_folders_i18n_root"


# --- Cache records ---


class CommitMeta(BaseModel):
    """Last commit touching a file."""

    commit_author: str | None = Field(default=None, description="Author name or login")
    commit_date: str | None = Field(default=None, description="ISO 8601 timestamp")


class CachedFileRecord(BaseModel):
    """Persisted raw file content, keyed by path and validated by sha."""

    path: str
    sha: str = Field(description="Git blob SHA-1 of the file")
    size: int = 0
    text: str | None = None
    meta: CommitMeta = Field(default_factory=CommitMeta)


# --- In-memory records ---


@dataclass(frozen=True)
class RawFile:
    """A file as listed by the repository backend."""

    path: str
    sha: str
    size: int = 0

    @property
    def name(self) -> str:
        return self.path.rsplit("/", 1)[-1]


@dataclass(frozen=True)
class EntryFolder:
    """Where the files of one collection (or collection file) live."""

    collection_name: str
    file_name: str | None = None
    extension: str = "md"
    folder_path: str | None = None
    folder_path_map: dict[str, str] = field(default_factory=dict)
    file_path_map: dict[str, str] = field(default_factory=dict)

    @property
    def file_paths(self) -> list[str]:
        return list(dict.fromkeys(self.file_path_map.values()))


@dataclass(frozen=True)
class AssetFolder:
    """A media folder, either global or scoped to a collection / file."""

    collection_name: str | None
    file_name: str | None
    internal_path: str
    public_path: str | None
    entry_relative: bool = False


@dataclass(frozen=True)
class FileListItem:
    """A repository file classified for one sync."""

    path: str
    sha: str
    size: int
    name: str
    type: FileType
    folder: EntryFolder | AssetFolder | None = None
    text: str | None = None
    meta: CommitMeta | None = None


@dataclass(frozen=True)
class LocalizedEntry:
    slug: str
    path: str
    sha: str
    content: dict[str, Any]


@dataclass(frozen=True)
class Entry:
    """A logical content entry merged across its localized files."""

    id: str
    slug: str
    sub_path: str
    collection_name: str
    file_name: str | None
    sha: str
    locales: dict[str, LocalizedEntry]
    commit_author: str | None = None
    commit_date: str | None = None


@dataclass(frozen=True)
class Asset:
    """A media file that belongs to an asset folder."""

    path: str
    name: str
    sha: str
    size: int
    kind: Literal["image", "video", "audio", "document", "other"]
    folder: AssetFolder | None
    commit_author: str | None = None
    commit_date: str | None = None
