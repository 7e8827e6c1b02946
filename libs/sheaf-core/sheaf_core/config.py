"""Site configuration loading and per-collection file configuration."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from pydantic import ValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from sheaf_core.errors import ConfigError
from sheaf_core.formats import (
    detect_file_extension,
    detect_file_format,
    get_front_matter_delimiters,
)
from sheaf_core.i18n import resolve_i18n_config
from sheaf_core.models import (
    Collection,
    CollectionFile,
    I18nConfig,
    IndexFileOptions,
    SiteConfig,
)

logger = logging.getLogger(__name__)

yaml = YAML()

DEFAULT_CONFIG_PATH = "admin/config.yml"
_TEMPLATE_RE = re.compile(r"({{.+?}})")


def load_site_config(path: Path) -> SiteConfig:
    """Load and validate the site configuration YAML file."""
    if not path.exists():
        raise ConfigError(f"Site config not found: {path}")
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.load(f) or {}
    except YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    try:
        return SiteConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid site config {path}: {e}") from e


@dataclass(frozen=True)
class FileConfig:
    """How the files of one collection (or collection file) are named and encoded."""

    extension: str
    format: str
    delimiter: str | list[str] | None
    i18n: I18nConfig
    base_path: str | None = None
    sub_path: str | None = None
    full_path: str | None = None
    full_path_regex: re.Pattern[str] | None = None
    index_file_name: str | None = None

    @property
    def fm_delimiters(self) -> tuple[str, str] | None:
        return get_front_matter_delimiters(self.format, self.delimiter)


def _index_file_name(collection: Collection) -> str | None:
    if isinstance(collection.index_file, IndexFileOptions):
        return collection.index_file.name
    if collection.index_file:
        return "_index"
    return None


def _template_pattern(template: str) -> str:
    """Regex source for a path template; placeholders match one path segment."""
    return "".join(
        "[^/]+?" if _TEMPLATE_RE.fullmatch(part) else re.escape(part)
        for part in _TEMPLATE_RE.split(template)
    )


def build_entry_path_regex(
    base_path: str,
    sub_path: str | None,
    extension: str,
    i18n: I18nConfig,
    index_file_name: str | None = None,
) -> re.Pattern[str]:
    """
    Compile the regex matching entry file paths of a folder collection.

    Named groups: ``sub_path`` always, ``locale`` for multi-file and
    multi-folder i18n structures.
    """
    locales = "|".join(re.escape(loc) for loc in i18n.all_locales)
    locale_group = f"(?P<locale>{locales})"

    pattern = "^"
    if i18n.i18n_enabled and i18n.is_root_multi_folder:
        pattern += f"{locale_group}/"
    if base_path:
        pattern += f"{re.escape(base_path)}/"
    if i18n.i18n_enabled and i18n.is_multi_folder:
        pattern += f"{locale_group}/"

    if sub_path:
        alternatives = [_template_pattern(sub_path)]
        if index_file_name:
            alternatives.append(re.escape(index_file_name))
        pattern += f"(?P<sub_path>{'|'.join(alternatives)})"
    else:
        pattern += "(?P<sub_path>.+?)"

    if i18n.i18n_enabled and i18n.is_multi_file:
        if i18n.omit_default_locale_from_filename:
            others = "|".join(
                re.escape(loc) for loc in i18n.all_locales if loc != i18n.default_locale
            )
            pattern += f"(?:\\.(?P<locale>{others}))?" if others else ""
        else:
            pattern += f"\\.{locale_group}"

    pattern += f"\\.{re.escape(extension)}$"
    return re.compile(pattern)


def build_file_config(
    site: SiteConfig, collection: Collection, file: CollectionFile | None = None
) -> FileConfig:
    """Resolve naming, format and i18n settings for a collection or one of its files."""
    i18n = resolve_i18n_config(site.i18n, collection, file)

    if file is not None:
        extension = detect_file_extension(
            file.format or collection.format,
            file.extension or PurePosixPath(file.file).suffix.lstrip(".") or collection.extension,
        )
        format = detect_file_format(file.format or collection.format, extension)
        return FileConfig(
            extension=extension,
            format=format,
            delimiter=file.frontmatter_delimiter or collection.frontmatter_delimiter,
            i18n=i18n,
            full_path=file.file.lstrip("/"),
        )

    extension = detect_file_extension(collection.format, collection.extension)
    format = detect_file_format(collection.format, extension)
    base_path = (collection.folder or "").strip("/")
    index_file_name = _index_file_name(collection)
    return FileConfig(
        extension=extension,
        format=format,
        delimiter=collection.frontmatter_delimiter,
        i18n=i18n,
        base_path=base_path,
        sub_path=collection.path,
        full_path_regex=build_entry_path_regex(
            base_path, collection.path, extension, i18n, index_file_name
        ),
        index_file_name=index_file_name,
    )


class CollectionConfigCache:
    """
    Memoized file configs for one site configuration.

    Configs are computed on first use per (collection, file) pair. Call
    `invalidate` whenever the site configuration changes.
    """

    def __init__(self, site: SiteConfig):
        self.site = site
        self._configs: dict[tuple[str, str | None], FileConfig] = {}

    def get_collection(self, name: str) -> Collection:
        collection = self.site.get_collection(name)
        if collection is None:
            raise ConfigError(f"Unknown collection: {name}")
        return collection

    def get_file_config(self, collection_name: str, file_name: str | None = None) -> FileConfig:
        key = (collection_name, file_name)
        if key not in self._configs:
            collection = self.get_collection(collection_name)
            file = None
            if file_name is not None:
                file = collection.get_file(file_name)
                if file is None:
                    raise ConfigError(f"Unknown file '{file_name}' in collection '{collection_name}'")
            self._configs[key] = build_file_config(self.site, collection, file)
            logger.debug(f"Resolved file config for {collection_name}/{file_name or '*'}")
        return self._configs[key]

    def get_i18n_config(self, collection_name: str, file_name: str | None = None) -> I18nConfig:
        return self.get_file_config(collection_name, file_name).i18n

    def invalidate(self, site: SiteConfig | None = None) -> None:
        """Drop all memoized configs, optionally switching to a new site config."""
        if site is not None:
            self.site = site
        self._configs.clear()
