"""Repository backends: where file listings and contents come from."""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Awaitable, Iterable, Protocol, TypeVar

from sheaf_core.digest import combined_sha, git_blob_sha
from sheaf_core.models import CommitMeta, FileListItem, RawFile

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_BRANCH = "main"
IGNORED_DIRS = (".git", ".sheaf", "node_modules", "__pycache__")


@dataclass(frozen=True)
class LastCommit:
    hash: str
    message: str | None = None


@dataclass(frozen=True)
class FetchedFile:
    """Content and commit metadata of one file. Only entry files carry text."""

    text: str | None
    size: int
    meta: CommitMeta


class RepositoryBackend(Protocol):
    """Source of repository listings and file contents."""

    name: str

    async def fetch_default_branch_name(self) -> str: ...

    async def fetch_last_commit(self, branch: str) -> LastCommit: ...

    async def fetch_file_list(self, branch: str, last_hash: str | None = None) -> list[RawFile]: ...

    async def fetch_file_contents(self, files: list[FileListItem]) -> dict[str, FetchedFile]: ...


async def gather_with_concurrency(coros: Iterable[Awaitable[T]], limit: int) -> list[T]:
    """Await ``coros`` with at most ``limit`` of them in flight; results keep input order."""
    semaphore = asyncio.Semaphore(max(limit, 1))

    async def bounded(coro: Awaitable[T]) -> T:
        async with semaphore:
            return await coro

    return await asyncio.gather(*(bounded(c) for c in coros))


def batched(items: list[T], size: int) -> list[list[T]]:
    return [items[i : i + size] for i in range(0, len(items), max(size, 1))]


class LocalBackend:
    """
    Backend reading a working tree on disk.

    File shas are Git blob ids. The "last commit" is a digest of the whole
    listing, so any change in the tree invalidates a cached file list.
    """

    name = "local"

    def __init__(self, root: Path, *, concurrency: int = 8, batch_size: int = 100):
        self.root = root
        self.concurrency = concurrency
        self.batch_size = batch_size
        self._listing: list[RawFile] | None = None

    def _read_branch(self) -> str:
        head = self.root / ".git" / "HEAD"
        if head.exists():
            ref = head.read_text(encoding="utf-8").strip()
            if ref.startswith("ref: refs/heads/"):
                return ref.removeprefix("ref: refs/heads/")
        return DEFAULT_BRANCH

    def _scan(self) -> list[RawFile]:
        files = []
        for dirpath, dirnames, filenames in os.walk(self.root):
            dirnames[:] = sorted(d for d in dirnames if d not in IGNORED_DIRS)
            for filename in sorted(filenames):
                path = Path(dirpath) / filename
                data = path.read_bytes()
                files.append(
                    RawFile(
                        path=path.relative_to(self.root).as_posix(),
                        sha=git_blob_sha(data),
                        size=len(data),
                    )
                )
        return files

    async def _listing_or_scan(self) -> list[RawFile]:
        if self._listing is None:
            self._listing = await asyncio.to_thread(self._scan)
            logger.info(f"Scanned {len(self._listing)} files under {self.root}")
        return self._listing

    async def fetch_default_branch_name(self) -> str:
        return await asyncio.to_thread(self._read_branch)

    async def fetch_last_commit(self, branch: str) -> LastCommit:
        listing = await self._listing_or_scan()
        return LastCommit(hash=combined_sha([(f.path, f.sha) for f in listing]))

    async def fetch_file_list(self, branch: str, last_hash: str | None = None) -> list[RawFile]:
        return list(await self._listing_or_scan())

    def _read_file(self, file: FileListItem) -> FetchedFile | None:
        path = self.root / file.path
        try:
            stat = path.stat()
            text = path.read_text(encoding="utf-8") if file.type == "entry" else None
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Could not read {file.path}: {e}")
            return None
        return FetchedFile(
            text=text,
            size=stat.st_size,
            meta=CommitMeta(
                commit_date=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc).isoformat(),
            ),
        )

    async def fetch_file_contents(self, files: list[FileListItem]) -> dict[str, FetchedFile]:
        results: dict[str, FetchedFile] = {}
        for batch in batched(files, self.batch_size):
            fetched = await gather_with_concurrency(
                (asyncio.to_thread(self._read_file, f) for f in batch),
                limit=self.concurrency,
            )
            for file, content in zip(batch, fetched):
                if content is not None:
                    results[file.path] = content
        return results

    def refresh(self) -> None:
        """Forget the cached listing so the next call rescans the tree."""
        self._listing = None
