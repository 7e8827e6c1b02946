"""Shared helpers for Sheaf tests: site builders, file writers and a fake backend."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

from sheaf_core import CollectionConfigCache, CommitMeta, FileListItem, RawFile, SiteConfig
from sheaf_core.digest import git_blob_sha
from sheaf_core.errors import CacheIOError
from sheaf_sync import create_file_list, get_all_asset_folders, get_all_entry_folders
from sheaf_sync.backend import FetchedFile, LastCommit


def write_file(p: Path, text: str) -> None:
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(text, encoding="utf-8")


def read_file(p: Path) -> str:
    return p.read_text(encoding="utf-8")


def mk_post(title: str, body: str = "Body", **extra: object) -> str:
    lines = ["---", f"title: {title}"]
    lines.extend(f"{k}: {v}" for k, v in extra.items())
    lines.extend(["---", body])
    return "\n".join(lines) + "\n"


def site(data: dict) -> SiteConfig:
    return SiteConfig.model_validate(data)


def raw_files(texts: dict[str, str]) -> list[RawFile]:
    return [
        RawFile(path=p, sha=git_blob_sha(t.encode("utf-8")), size=len(t.encode("utf-8")))
        for p, t in texts.items()
    ]


def entry_files(
    site_config: SiteConfig, texts: dict[str, str]
) -> tuple[list[FileListItem], CollectionConfigCache]:
    """Classify ``texts`` against the site and attach each entry file's text."""
    configs = CollectionConfigCache(site_config)
    file_list = create_file_list(
        raw_files(texts),
        get_all_entry_folders(site_config, configs),
        get_all_asset_folders(site_config),
    )
    return [replace(f, text=texts[f.path]) for f in file_list.entry_files], configs


class FakeBackend:
    """In-memory repository that records what the loader asks for."""

    name = "fake"

    def __init__(self, files: dict[str, str], commit: str = "c1", branch: str = "main"):
        self.files = dict(files)
        self.commit = commit
        self.branch = branch
        self.list_calls = 0
        self.fetched_paths: list[str] = []

    def push(self, files: dict[str, str], commit: str) -> None:
        """Replace the repository contents with a new commit."""
        self.files = dict(files)
        self.commit = commit

    async def fetch_default_branch_name(self) -> str:
        return self.branch

    async def fetch_last_commit(self, branch: str) -> LastCommit:
        return LastCommit(hash=self.commit, message=f"commit {self.commit}")

    async def fetch_file_list(self, branch: str, last_hash: str | None = None) -> list[RawFile]:
        self.list_calls += 1
        return raw_files(self.files)

    async def fetch_file_contents(self, files: list[FileListItem]) -> dict[str, FetchedFile]:
        self.fetched_paths.extend(f.path for f in files)
        return {
            f.path: FetchedFile(
                text=self.files[f.path],
                size=len(self.files[f.path].encode("utf-8")),
                meta=CommitMeta(commit_author="alice", commit_date="2024-05-01T10:00:00+00:00"),
            )
            for f in files
            if f.path in self.files
        }


class BrokenStore:
    """Persistent store whose every operation fails."""

    def get(self, key):
        raise CacheIOError("disk on fire")

    def set(self, key, value):
        raise CacheIOError("disk on fire")

    def delete(self, key):
        raise CacheIOError("disk on fire")
