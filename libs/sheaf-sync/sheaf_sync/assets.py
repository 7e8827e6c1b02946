"""Asset records for media files found during a sync."""

import posixpath
from typing import Iterable

from sheaf_core.models import Asset, AssetFolder, FileListItem

ASSET_KINDS = {
    "image": ("apng", "avif", "bmp", "gif", "ico", "jpeg", "jpg", "png", "svg", "tif", "tiff", "webp"),
    "video": ("avi", "m4v", "mkv", "mov", "mp4", "mpeg", "ogv", "webm"),
    "audio": ("aac", "flac", "m4a", "mp3", "oga", "ogg", "opus", "wav"),
    "document": ("csv", "doc", "docx", "odp", "ods", "odt", "pdf", "ppt", "pptx", "txt", "xls", "xlsx"),
}


def get_asset_kind(name: str) -> str:
    extension = posixpath.splitext(name)[1].lstrip(".").lower()
    for kind, extensions in ASSET_KINDS.items():
        if extension in extensions:
            return kind
    return "other"


def parse_asset_files(asset_files: Iterable[FileListItem]) -> list[Asset]:
    """Build asset records from classified asset files."""
    assets = []
    for file in asset_files:
        meta = file.meta
        assets.append(
            Asset(
                path=file.path,
                name=file.name,
                sha=file.sha,
                size=file.size,
                kind=get_asset_kind(file.name),
                folder=file.folder if isinstance(file.folder, AssetFolder) else None,
                commit_author=meta.commit_author if meta else None,
                commit_date=meta.commit_date if meta else None,
            )
        )
    return assets
