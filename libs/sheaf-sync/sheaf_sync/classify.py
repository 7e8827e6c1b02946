"""Classify repository files into entry, asset and config files."""

import logging
import posixpath
from dataclasses import dataclass, field
from typing import Iterable

from sheaf_core.models import AssetFolder, EntryFolder, FileListItem, RawFile

logger = logging.getLogger(__name__)

GIT_CONFIG_FILE_NAMES = (".gitattributes", ".gitkeep")


@dataclass
class FileList:
    """Result of classifying one repository listing."""

    entry_files: list[FileListItem] = field(default_factory=list)
    asset_files: list[FileListItem] = field(default_factory=list)
    config_files: list[FileListItem] = field(default_factory=list)

    @property
    def all_files(self) -> list[FileListItem]:
        return [*self.entry_files, *self.asset_files, *self.config_files]

    @property
    def count(self) -> int:
        return len(self.entry_files) + len(self.asset_files) + len(self.config_files)


def _extension(path: str) -> str:
    return posixpath.splitext(path)[1].lstrip(".")


def match_entry_folder(path: str, entry_folders: list[EntryFolder]) -> EntryFolder | None:
    """Return the last entry folder containing ``path``, if any."""
    for folder in reversed(entry_folders):
        if path in folder.file_path_map.values():
            return folder
        for folder_path in folder.folder_path_map.values():
            if not folder_path or path.startswith(f"{folder_path}/"):
                return folder
    return None


def match_asset_folder(path: str, asset_folders: list[AssetFolder]) -> AssetFolder | None:
    """
    Return the last asset folder containing ``path``, if any.

    Entry-relative folders match anything below them; other media folders
    only match files directly inside.
    """
    parent = posixpath.dirname(path)
    for folder in reversed(asset_folders):
        if folder.entry_relative:
            if not folder.internal_path or path.startswith(f"{folder.internal_path}/"):
                return folder
        elif parent == folder.internal_path:
            return folder
    return None


def create_file_list(
    files: Iterable[RawFile],
    entry_folders: list[EntryFolder],
    asset_folders: list[AssetFolder],
) -> FileList:
    """
    Split a repository listing into entry, asset and config files.

    A file is an entry when it sits in an entry folder and either is the
    folder's fixed file path or has the folder's extension. A file is an asset
    when it sits in an asset folder, is not an entry and its name does not
    start with ``+``. Hidden files are skipped, except Git config files which
    are collected separately.
    """
    file_list = FileList()

    for file in files:
        path, name = file.path, file.name

        if name.startswith("."):
            if name in GIT_CONFIG_FILE_NAMES:
                file_list.config_files.append(
                    FileListItem(path=path, sha=file.sha, size=file.size, name=name, type="config")
                )
            continue

        entry_folder = match_entry_folder(path, entry_folders)
        is_entry = entry_folder is not None and (
            path in entry_folder.file_path_map.values()
            or _extension(path) == entry_folder.extension
        )
        if is_entry:
            file_list.entry_files.append(
                FileListItem(
                    path=path,
                    sha=file.sha,
                    size=file.size,
                    name=name,
                    type="entry",
                    folder=entry_folder,
                )
            )
            continue

        asset_folder = match_asset_folder(path, asset_folders)
        if asset_folder is not None and not name.startswith("+"):
            file_list.asset_files.append(
                FileListItem(
                    path=path,
                    sha=file.sha,
                    size=file.size,
                    name=name,
                    type="asset",
                    folder=asset_folder,
                )
            )
            continue

        if entry_folder is not None or asset_folder is not None:
            logger.debug(f"Skipping {path}: not an entry or asset of its folder")

    logger.info(
        f"Classified {file_list.count} files: {len(file_list.entry_files)} entries, "
        f"{len(file_list.asset_files)} assets"
    )
    return file_list
