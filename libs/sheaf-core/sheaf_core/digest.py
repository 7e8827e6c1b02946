"""Content hashing compatible with Git object ids."""

import hashlib


def git_blob_sha(data: bytes) -> str:
    """Return the Git blob SHA-1 of ``data`` (what `git hash-object` prints)."""
    header = f"blob {len(data)}\0".encode()
    return hashlib.sha1(header + data).hexdigest()


def combined_sha(items: list[tuple[str, str]]) -> str:
    """Hash a list of (path, sha) pairs into a single tree-like digest."""
    h = hashlib.sha1()
    for path, sha in sorted(items):
        h.update(f"{path}\0{sha}\n".encode())
    return h.hexdigest()
