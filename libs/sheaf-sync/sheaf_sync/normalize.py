"""Entry normalization: parse entry files and merge their locales into entries."""

from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass, field
from typing import Any, Iterable

from sheaf_core.config import CollectionConfigCache, FileConfig
from sheaf_core.content import flatten
from sheaf_core.errors import ParseError
from sheaf_core.formats import parse
from sheaf_core.i18n import DEFAULT_LOCALE_KEY
from sheaf_core.models import (
    Collection,
    CommitMeta,
    Entry,
    EntryFolder,
    FieldDef,
    FileListItem,
    LocalizedEntry,
    SlugOptions,
)
from sheaf_core.slug import extract_slug, normalize_slug

logger = logging.getLogger(__name__)

DEFAULT_INDEX_FILE_NAME = "_index"
IDENTIFIER_FALLBACK_FIELDS = ("title", "name", "label")


@dataclass
class _EntryDraft:
    """An entry being assembled; keyed by its merge key until finalized."""

    collection_name: str
    file_name: str | None
    slug: str
    sub_path: str
    sha: str
    locales: dict[str, LocalizedEntry] = field(default_factory=dict)
    meta: CommitMeta = field(default_factory=CommitMeta)

    def finalize(self) -> Entry:
        return Entry(
            id=str(uuid.uuid4()),
            slug=self.slug,
            sub_path=self.sub_path,
            collection_name=self.collection_name,
            file_name=self.file_name,
            sha=self.sha,
            locales=dict(self.locales),
            commit_author=self.meta.commit_author,
            commit_date=self.meta.commit_date,
        )


def has_root_list_field(fields: list[FieldDef]) -> bool:
    """True when the only field is a top-level list, stored as a bare array."""
    return len(fields) == 1 and fields[0].widget == "list" and fields[0].root


def is_index_file(name: str, index_file_name: str = DEFAULT_INDEX_FILE_NAME) -> bool:
    """Match ``_index.md`` and localized variants such as ``_index.fr.md``."""
    return re.fullmatch(rf"{re.escape(index_file_name)}(?:\.[^./]+)?\.md", name) is not None


def _index_file_included(collection: Collection, config: FileConfig) -> bool:
    if collection.files is not None or config.index_file_name:
        return True
    template = collection.path or ""
    return template.rsplit("/", 1)[-1] == DEFAULT_INDEX_FILE_NAME and config.extension == "md"


def _wrap_root_list(parsed: Any, fields: list[FieldDef], config: FileConfig) -> Any:
    name = fields[0].name
    i18n = config.i18n
    if i18n.i18n_enabled and i18n.is_single_file and isinstance(parsed, dict):
        return {
            locale: {name: value} if isinstance(value, list) else value
            for locale, value in parsed.items()
        }
    if isinstance(parsed, list):
        return {name: parsed}
    return parsed


def _identifier_slug(
    content: dict[str, Any], collection: Collection, options: SlugOptions | None
) -> str:
    for key in dict.fromkeys((collection.identifier_field, *IDENTIFIER_FALLBACK_FIELDS)):
        value = content.get(key)
        if value is not None and str(value).strip():
            return normalize_slug(str(value), options)
    return ""


def get_slug(
    collection: Collection,
    sub_path: str,
    content: dict[str, Any],
    options: SlugOptions | None = None,
) -> str:
    """
    Derive the slug of a folder entry.

    A path template containing ``{{slug}}`` is matched against the sub path;
    without such a template the sub path itself is the slug. When the
    template does not match, the slug comes from the identifier field.
    """
    template = collection.path
    if not template or "{{slug}}" not in template:
        return sub_path
    slug = extract_slug(template, sub_path)
    if slug:
        return slug
    return _identifier_slug(content, collection, options)


class EntryNormalizer:
    """Sequentially merges entry files into drafts, then finalizes entries."""

    def __init__(self, configs: CollectionConfigCache, slug_options: SlugOptions | None = None):
        self.configs = configs
        self.slug_options = slug_options or configs.site.slug
        self.drafts: dict[str, _EntryDraft] = {}
        self.errors: list[ParseError] = []

    def add(self, file: FileListItem) -> None:
        """Parse one entry file and merge it. Parse failures are collected."""
        try:
            self._add(file)
        except ParseError as e:
            error = e if e.path else e.with_path(file.path)
            logger.warning(f"Skipping {file.path}: {error.message}")
            self.errors.append(error)

    def _add(self, file: FileListItem) -> None:
        folder = file.folder
        if not isinstance(folder, EntryFolder):
            logger.debug(f"Skipping {file.path}: no entry folder")
            return

        collection = self.configs.get_collection(folder.collection_name)
        config = self.configs.get_file_config(folder.collection_name, folder.file_name)
        i18n = config.i18n
        is_file = folder.file_name is not None

        if file.text is None:
            raise ParseError("content was not fetched", path=file.path)

        index_name = config.index_file_name or DEFAULT_INDEX_FILE_NAME
        is_index = not is_file and is_index_file(file.name, index_name)
        if is_index and not _index_file_included(collection, config):
            logger.debug(f"Skipping index file {file.path}")
            return

        parsed = parse(file.text, config, path=file.path)

        fields = collection.fields
        if is_file:
            collection_file = collection.get_file(folder.file_name)
            fields = collection_file.fields if collection_file else []
        if has_root_list_field(fields):
            parsed = _wrap_root_list(parsed, fields, config)

        if not isinstance(parsed, dict):
            raise ParseError("entry content must be a mapping", path=file.path)

        # Locate sub path and locale
        locale: str | None = None
        if is_file:
            sub_path = config.full_path or file.path
            if i18n.i18n_enabled and not i18n.is_single_file:
                locale = next(
                    (loc for loc, path in folder.file_path_map.items() if path == file.path), None
                )
        else:
            m = config.full_path_regex.match(file.path) if config.full_path_regex else None
            if m is None:
                logger.debug(f"Skipping {file.path}: path does not match collection template")
                return
            sub_path = m.group("sub_path")
            locale = m.groupdict().get("locale")

        if i18n.i18n_enabled and not i18n.is_single_file and locale is None:
            locale = i18n.default_locale

        if is_file:
            slug = folder.file_name
        elif sub_path == index_name:
            slug = index_name
        else:
            slug_source = parsed
            if i18n.i18n_enabled and i18n.is_single_file:
                default_content = parsed.get(i18n.default_locale)
                slug_source = default_content if isinstance(default_content, dict) else {}
            slug = get_slug(collection, sub_path, slug_source, self.slug_options)

        self._merge(file, folder, config, parsed, slug, sub_path, locale)

    def _merge(
        self,
        file: FileListItem,
        folder: EntryFolder,
        config: FileConfig,
        parsed: dict[str, Any],
        slug: str,
        sub_path: str,
        locale: str | None,
    ) -> None:
        i18n = config.i18n
        meta = file.meta or CommitMeta()

        def draft(locales: dict[str, LocalizedEntry]) -> _EntryDraft:
            return _EntryDraft(
                collection_name=folder.collection_name,
                file_name=folder.file_name,
                slug=slug,
                sub_path=sub_path,
                sha=file.sha,
                locales=locales,
                meta=meta,
            )

        if not i18n.i18n_enabled:
            localized = LocalizedEntry(slug=slug, path=file.path, sha=file.sha, content=flatten(parsed))
            self.drafts[file.path] = draft({DEFAULT_LOCALE_KEY: localized})
            return

        if i18n.is_single_file:
            locales = {
                loc: LocalizedEntry(slug=slug, path=file.path, sha=file.sha, content=flatten(value))
                for loc in i18n.all_locales
                if isinstance(value := parsed.get(loc), dict)
            }
            self.drafts[file.path] = draft(locales)
            return

        if locale not in i18n.all_locales:
            logger.debug(f"Skipping {file.path}: locale {locale!r} is not configured")
            return

        canonical = parsed.get(i18n.canonical_slug.key)
        merge_id = canonical if isinstance(canonical, str) and canonical else slug
        if folder.file_name is not None:
            merge_key = f"{folder.collection_name}/{folder.file_name}"
        else:
            merge_key = f"{folder.collection_name}/{merge_id}"

        localized = LocalizedEntry(slug=slug, path=file.path, sha=file.sha, content=flatten(parsed))
        existing = self.drafts.get(merge_key)
        if existing is None:
            new_draft = draft({locale: localized})
            if locale != i18n.default_locale:
                # Filled in when the default locale file merges
                new_draft.slug = ""
                new_draft.sub_path = ""
            self.drafts[merge_key] = new_draft
            return

        if locale in existing.locales:
            logger.debug(
                f"{merge_key}: {file.path} replaces {existing.locales[locale].path} for '{locale}'"
            )
        existing.locales[locale] = localized
        if locale == i18n.default_locale:
            # The default locale decides the public slug
            existing.slug = slug
            existing.sub_path = sub_path
            existing.sha = file.sha
            existing.meta = meta

    def finalize(self) -> list[Entry]:
        """Assign ids and drop drafts without a slug or any locale."""
        entries = []
        for key, draft in self.drafts.items():
            if not draft.slug or not draft.locales:
                logger.debug(f"Dropping incomplete entry {key}")
                continue
            entries.append(draft.finalize())
        return entries


def prepare_entries(
    entry_files: Iterable[FileListItem],
    configs: CollectionConfigCache,
    slug_options: SlugOptions | None = None,
) -> tuple[list[Entry], list[ParseError]]:
    """
    Turn fetched entry files into entries.

    Returns:
        (entries, parse_errors)
    """
    normalizer = EntryNormalizer(configs, slug_options)
    for file in entry_files:
        normalizer.add(file)
    entries = normalizer.finalize()
    logger.info(f"Prepared {len(entries)} entries ({len(normalizer.errors)} parse errors)")
    return entries, normalizer.errors
