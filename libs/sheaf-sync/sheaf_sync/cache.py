"""Persistent cache of raw file contents, keyed by path and validated by sha."""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, Iterable, Protocol

from pydantic import ValidationError

from sheaf_core.errors import CacheIOError
from sheaf_core.models import CachedFileRecord, CommitMeta, FileListItem, RawFile

logger = logging.getLogger(__name__)

FILES_KEY = "files"
LAST_COMMIT_KEY = "last_commit_hash"


class PersistentStore(Protocol):
    """Key-value store holding JSON-compatible values."""

    def get(self, key: str) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStore:
    """In-process store, mostly for tests and one-shot runs."""

    def __init__(self, data: dict[str, Any] | None = None):
        self.data: dict[str, Any] = dict(data or {})

    def get(self, key: str) -> Any:
        return self.data.get(key)

    def set(self, key: str, value: Any) -> None:
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)


class JsonFileStore:
    """Store persisted as a single JSON document, rewritten atomically on every change."""

    def __init__(self, path: Path):
        self.path = path
        self._data: dict[str, Any] | None = None
        self._corrupt = False

    def _read(self) -> dict[str, Any]:
        if self._data is None:
            if not self.path.exists():
                self._data = {}
            else:
                try:
                    with open(self.path, encoding="utf-8") as f:
                        data = json.load(f)
                except OSError as e:
                    raise CacheIOError(f"Cannot read cache {self.path}: {e}") from e
                except (json.JSONDecodeError, UnicodeDecodeError) as e:
                    # Start over; the next write replaces the corrupt file
                    logger.warning(f"Discarding corrupt cache {self.path}: {e}")
                    data = {}
                    self._corrupt = True
                if not isinstance(data, dict):
                    self._corrupt = True
                    data = {}
                self._data = data
        return self._data

    def _write(self, data: dict[str, Any]) -> None:
        tmp = self.path.with_name(f".{self.path.name}.sheaftmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            tmp.replace(self.path)
        except OSError as e:
            raise CacheIOError(f"Cannot write cache {self.path}: {e}") from e
        self._data = data
        self._corrupt = False

    def get(self, key: str) -> Any:
        return self._read().get(key)

    def set(self, key: str, value: Any) -> None:
        data = dict(self._read())
        data[key] = value
        self._write(data)

    def delete(self, key: str) -> None:
        data = dict(self._read())
        if data.pop(key, None) is not None or self._corrupt:
            self._write(data)


class SyncCache:
    """
    File content cache for repository syncs.

    Records are only trusted while their sha matches the repository listing.
    Every store access is best-effort: a failing store behaves like an empty
    cache and skipped writes are logged.
    """

    def __init__(self, store: PersistentStore):
        self.store = store

    def load_records(self) -> dict[str, CachedFileRecord]:
        """Return cached records by path, dropping any that fail validation."""
        try:
            raw = self.store.get(FILES_KEY) or {}
        except CacheIOError as e:
            logger.warning(f"Ignoring unreadable cache: {e}")
            return {}
        if not isinstance(raw, dict):
            logger.warning(f"Ignoring cached files of type {type(raw).__name__}")
            return {}

        records: dict[str, CachedFileRecord] = {}
        for path, data in raw.items():
            try:
                records[path] = CachedFileRecord.model_validate(data)
            except ValidationError:
                logger.debug(f"Dropping malformed cache record for {path}")
        return records

    def last_commit_hash(self) -> str | None:
        try:
            value = self.store.get(LAST_COMMIT_KEY)
        except CacheIOError as e:
            logger.warning(f"Ignoring unreadable cache: {e}")
            return None
        return value if isinstance(value, str) else None

    def remember_commit(self, commit_hash: str) -> None:
        """Store the commit hash the cached records correspond to."""
        try:
            self.store.set(LAST_COMMIT_KEY, commit_hash)
        except CacheIOError as e:
            logger.warning(f"Could not record last commit hash: {e}")

    @staticmethod
    def can_reuse_file_list(
        cached: dict[str, CachedFileRecord], last_hash: str | None, current_hash: str | None
    ) -> bool:
        """True when the repository has not moved since the cache was written."""
        return bool(cached) and current_hash is not None and last_hash == current_hash

    @staticmethod
    def cached_raw_files(cached: dict[str, CachedFileRecord]) -> list[RawFile]:
        """Rebuild a repository listing from cached records."""
        return [RawFile(path=r.path, sha=r.sha, size=r.size) for r in cached.values()]

    def diff(
        self,
        files: Iterable[FileListItem],
        cached: dict[str, CachedFileRecord],
        last_hash: str | None,
        current_hash: str | None,
    ) -> list[FileListItem]:
        """Return the files whose content has to be fetched."""
        if self.can_reuse_file_list(cached, last_hash, current_hash):
            to_fetch = [f for f in files if f.path not in cached or cached[f.path].text is None]
        else:
            to_fetch = [
                f
                for f in files
                if f.path not in cached
                or cached[f.path].sha != f.sha
                or cached[f.path].text is None
            ]
        logger.info(f"Cache diff: {len(to_fetch)} file(s) to fetch")
        return to_fetch

    @staticmethod
    def restore(
        files: Iterable[FileListItem], cached: dict[str, CachedFileRecord]
    ) -> list[FileListItem]:
        """Fill in text and commit metadata from cached records with a matching sha."""
        restored = []
        for f in files:
            record = cached.get(f.path)
            if record is not None and record.sha == f.sha:
                f = replace(f, text=record.text, meta=record.meta)
            restored.append(f)
        return restored

    @staticmethod
    def missing_meta(
        files: Iterable[FileListItem], cached: dict[str, CachedFileRecord]
    ) -> list[FileListItem]:
        """Return the files without cached commit metadata for their current sha."""
        missing = []
        for f in files:
            record = cached.get(f.path)
            if record is None or record.sha != f.sha or record.meta == CommitMeta():
                missing.append(f)
        return missing

    def _save(self, records: dict[str, CachedFileRecord]) -> None:
        try:
            self.store.set(FILES_KEY, {p: r.model_dump() for p, r in records.items()})
        except CacheIOError as e:
            logger.warning(f"Skipped cache write: {e}")

    def commit(self, fetched: Iterable[CachedFileRecord]) -> None:
        """Persist new and changed records in a single write."""
        fetched = list(fetched)
        if not fetched:
            return
        records = self.load_records()
        records.update({r.path: r for r in fetched})
        self._save(records)
        logger.info(f"Cached {len(fetched)} file(s)")

    def evict(self, current_files: Iterable[FileListItem | RawFile]) -> int:
        """Drop records for paths absent from the current listing. Returns the count."""
        current = {f.path for f in current_files}
        records = self.load_records()
        stale = [p for p in records if p not in current]
        if stale:
            for path in stale:
                del records[path]
            self._save(records)
            logger.info(f"Evicted {len(stale)} stale cache record(s)")
        return len(stale)

    def clear(self) -> None:
        try:
            self.store.delete(FILES_KEY)
            self.store.delete(LAST_COMMIT_KEY)
        except CacheIOError as e:
            logger.warning(f"Could not clear cache: {e}")
