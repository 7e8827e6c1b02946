"""Sync pipeline: list, classify, fetch, cache and normalize repository content."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace

from sheaf_core.config import CollectionConfigCache
from sheaf_core.errors import ParseError
from sheaf_core.models import Asset, CachedFileRecord, Entry, FileListItem, SiteConfig

from sheaf_sync.assets import parse_asset_files
from sheaf_sync.backend import FetchedFile, RepositoryBackend
from sheaf_sync.cache import PersistentStore, SyncCache
from sheaf_sync.classify import FileList, create_file_list
from sheaf_sync.folders import get_all_asset_folders, get_all_entry_folders
from sheaf_sync.normalize import prepare_entries

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    """Outcome of one sync pass."""

    branch: str
    commit_hash: str
    file_list: FileList
    entries: list[Entry] = field(default_factory=list)
    assets: list[Asset] = field(default_factory=list)
    errors: list[ParseError] = field(default_factory=list)
    fetched: int = 0
    reused: int = 0
    evicted: int = 0
    file_list_from_cache: bool = False


def _apply_fetched(files: list[FileListItem], fetched: dict[str, FetchedFile]) -> list[FileListItem]:
    return [
        replace(f, text=fetched[f.path].text, meta=fetched[f.path].meta) if f.path in fetched else f
        for f in files
    ]


class ContentLoader:
    """
    Runs a full sync against a repository backend.

    Entries and assets are rebuilt from scratch on every call; only raw file
    contents survive between calls, in the persistent store.
    """

    def __init__(
        self,
        site: SiteConfig,
        backend: RepositoryBackend,
        store: PersistentStore,
        *,
        branch: str | None = None,
        configs: CollectionConfigCache | None = None,
    ):
        self.site = site
        self.backend = backend
        self.branch = branch
        self.configs = configs or CollectionConfigCache(site)
        self.cache = SyncCache(store)

    async def load(self) -> SyncResult:
        branch = self.branch or await self.backend.fetch_default_branch_name()
        last_commit = await self.backend.fetch_last_commit(branch)
        logger.info(f"Syncing {self.backend.name} branch '{branch}' at {last_commit.hash[:10]}")

        cached = self.cache.load_records()
        last_hash = self.cache.last_commit_hash()

        from_cache = self.cache.can_reuse_file_list(cached, last_hash, last_commit.hash)
        if from_cache:
            logger.info("Repository unchanged since last sync, reusing cached file list")
            raw_files = self.cache.cached_raw_files(cached)
        else:
            raw_files = await self.backend.fetch_file_list(branch, last_hash)

        file_list = create_file_list(
            raw_files,
            get_all_entry_folders(self.site, self.configs),
            get_all_asset_folders(self.site),
        )

        to_fetch = self.cache.diff(file_list.entry_files, cached, last_hash, last_commit.hash)
        # Assets are fetched for their commit metadata only
        assets_to_fetch = self.cache.missing_meta(file_list.asset_files, cached)
        fetching = [*to_fetch, *assets_to_fetch]
        fetched = await self.backend.fetch_file_contents(fetching) if fetching else {}
        entry_files = _apply_fetched(self.cache.restore(file_list.entry_files, cached), fetched)
        asset_files = _apply_fetched(self.cache.restore(file_list.asset_files, cached), fetched)

        entries, errors = prepare_entries(entry_files, self.configs, self.site.slug)
        assets = parse_asset_files(asset_files)

        # Persist records first; the commit hash marks them complete
        records = [
            CachedFileRecord(path=f.path, sha=f.sha, size=f.size, text=f.text, meta=f.meta)
            for f in entry_files
            if f.path in fetched
        ]
        records.extend(
            CachedFileRecord(path=f.path, sha=f.sha, size=f.size, meta=f.meta)
            for f in asset_files
            if f.path in fetched
        )
        # Listed without text, so a reused file list still knows about them
        records.extend(
            CachedFileRecord(path=f.path, sha=f.sha, size=f.size)
            for f in (*fetching, *file_list.config_files)
            if f.path not in fetched and (f.path not in cached or cached[f.path].sha != f.sha)
        )
        self.cache.commit(records)
        evicted = self.cache.evict(file_list.all_files)
        self.cache.remember_commit(last_commit.hash)

        return SyncResult(
            branch=branch,
            commit_hash=last_commit.hash,
            file_list=file_list,
            entries=entries,
            assets=assets,
            errors=errors,
            fetched=sum(1 for f in to_fetch if f.path in fetched),
            reused=len(file_list.entry_files) - len(to_fetch),
            evicted=evicted,
            file_list_from_cache=from_cache,
        )
