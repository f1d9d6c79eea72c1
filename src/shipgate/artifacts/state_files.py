"""JSON state-file writing and content digests."""

from __future__ import annotations

import hashlib
import json
import os
import tempfile
from functools import partial
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pathlib import Path

CHUNK_SIZE = 64 * 1024


def pretty_dumps(obj: Any) -> str:
    """Sorted, indented JSON with a trailing newline, stable across runs."""
    return json.dumps(obj, sort_keys=True, indent=2, ensure_ascii=False) + "\n"


def write_json_atomic(path: Path, obj: Any) -> None:
    """Write ``obj`` to a sibling temp file, then ``os.replace`` it into place.

    Readers never observe a partially written document.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(pretty_dumps(obj))
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


def sha256_file(path: Path) -> str:
    """Lowercase hex SHA-256 of the file's bytes, read in fixed-size chunks.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
    """
    digest = hashlib.sha256()
    with path.open("rb") as handle:
        for chunk in iter(partial(handle.read, CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()
