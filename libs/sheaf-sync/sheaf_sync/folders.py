"""Entry and asset folders derived from the site configuration."""

import posixpath

from sheaf_core.config import CollectionConfigCache
from sheaf_core.i18n import DEFAULT_LOCALE_KEY, LOCALE_PLACEHOLDER, get_locale_path
from sheaf_core.models import (
    AssetFolder,
    Collection,
    CollectionFile,
    EntryFolder,
    SiteConfig,
)


def _strip_slashes(path: str) -> str:
    return path.strip("/")


def _collections(site: SiteConfig) -> list[Collection]:
    collections = list(site.collections)
    if site.singletons_collection is not None:
        collections.append(site.singletons_collection)
    return collections


def _file_entry_folder(
    collection: Collection, file: CollectionFile, configs: CollectionConfigCache
) -> EntryFolder:
    config = configs.get_file_config(collection.name, file.name)
    path = config.full_path or ""
    if LOCALE_PLACEHOLDER in path:
        file_path_map = {
            locale: get_locale_path(config.i18n, locale, path) for locale in config.i18n.all_locales
        }
    else:
        file_path_map = {DEFAULT_LOCALE_KEY: path}
    return EntryFolder(
        collection_name=collection.name,
        file_name=file.name,
        extension=config.extension,
        file_path_map=file_path_map,
    )


def get_all_entry_folders(site: SiteConfig, configs: CollectionConfigCache) -> list[EntryFolder]:
    """List the folders and fixed file paths holding entries, in configuration order."""
    folders: list[EntryFolder] = []

    for collection in _collections(site):
        if collection.files is not None:
            folders.extend(_file_entry_folder(collection, f, configs) for f in collection.files)
            continue
        if collection.folder is None:
            continue

        config = configs.get_file_config(collection.name)
        folder_path = config.base_path or ""
        if config.i18n.is_root_multi_folder:
            folder_path_map = {
                locale: posixpath.join(locale, folder_path) if folder_path else locale
                for locale in config.i18n.all_locales
            }
        else:
            folder_path_map = {locale: folder_path for locale in config.i18n.all_locales}

        folders.append(
            EntryFolder(
                collection_name=collection.name,
                extension=config.extension,
                folder_path=folder_path,
                folder_path_map=folder_path_map,
            )
        )

    return folders


def _asset_folder(
    media_folder: str,
    public_folder: str | None,
    base_folder: str,
    collection_name: str | None,
    file_name: str | None = None,
) -> AssetFolder:
    entry_relative = not media_folder.startswith("/")
    if entry_relative:
        # Media stored next to the entries
        internal_path = _strip_slashes(base_folder)
        public_path = public_folder if public_folder is not None else media_folder
    else:
        internal_path = _strip_slashes(media_folder)
        public_path = public_folder if public_folder is not None else f"/{internal_path}"
    return AssetFolder(
        collection_name=collection_name,
        file_name=file_name,
        internal_path=internal_path,
        public_path=public_path,
        entry_relative=entry_relative,
    )


def get_all_asset_folders(site: SiteConfig) -> list[AssetFolder]:
    """
    List media folders: the global one first, then collection and file level ones.

    A media folder without a leading slash is relative to the entries of its
    collection (or to the directory of its file).
    """
    folders: list[AssetFolder] = []

    if site.media_folder is not None:
        internal_path = _strip_slashes(site.media_folder)
        public_path = site.public_folder if site.public_folder is not None else f"/{internal_path}"
        folders.append(
            AssetFolder(
                collection_name=None,
                file_name=None,
                internal_path=internal_path,
                public_path=public_path,
            )
        )

    for collection in _collections(site):
        if collection.media_folder is not None:
            folders.append(
                _asset_folder(
                    collection.media_folder,
                    collection.public_folder,
                    collection.folder or "",
                    collection.name,
                )
            )
        for file in collection.files or []:
            if file.media_folder is not None:
                folders.append(
                    _asset_folder(
                        file.media_folder,
                        file.public_folder,
                        posixpath.dirname(file.file),
                        collection.name,
                        file.name,
                    )
                )

    return folders
