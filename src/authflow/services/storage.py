"""Single-use ephemeral storage for in-flight login secrets.

The login spans two separate user-agent visits (authorize, then callback), so
``state`` and ``code_verifier`` need a place that survives the gap but is not
the long-lived token store. Entries are deleted by the flow engine as soon as
the callback has been handled.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

STATE_KEY = "oauth_state"
CODE_VERIFIER_KEY = "oauth_code_verifier"


class EphemeralStore(Protocol):
    """Capability for session-scoped, single-use key/value entries."""

    def put(self, key: str, value: str) -> None: ...

    def get(self, key: str) -> str | None: ...

    def delete(self, key: str) -> None: ...


class MemoryEphemeralStore:
    """Ephemeral store for hosts where the callback lands in the same process."""

    def __init__(self) -> None:
        self._entries: dict[str, str] = {}

    def put(self, key: str, value: str) -> None:
        self._entries[key] = value

    def get(self, key: str) -> str | None:
        return self._entries.get(key)

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._entries


class FileEphemeralStore:
    """Ephemeral store backed by one JSON file.

    For hosts where the callback is handled by a new process. All writes are
    atomic: content goes to a temporary file in the same directory with
    ``0o600`` permissions, then is renamed into place. The file is removed
    once its last entry is deleted.

    Args:
        path: Location of the session file
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def put(self, key: str, value: str) -> None:
        entries = self._load()
        entries[key] = value
        self._save(entries)

    def get(self, key: str) -> str | None:
        return self._load().get(key)

    def delete(self, key: str) -> None:
        entries = self._load()
        if key not in entries:
            return
        del entries[key]
        if entries:
            self._save(entries)
        else:
            self._path.unlink(missing_ok=True)

    def __contains__(self, key: str) -> bool:
        return key in self._load()

    def _load(self) -> dict[str, str]:
        if not self._path.is_file():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Discarding unreadable session file {self._path}: {e}")
            return {}
        if not isinstance(data, dict):
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def _save(self, entries: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)

        fd = None
        tmp_path: str | None = None
        try:
            fd = tempfile.NamedTemporaryFile(
                mode="w",
                dir=self._path.parent,
                prefix=f".{self._path.name}.",
                suffix=".tmp",
                delete=False,
                encoding="utf-8",
            )
            tmp_path = fd.name
            # Restrict permissions before any secret is written
            os.chmod(tmp_path, 0o600)
            fd.write(json.dumps(entries))
            fd.flush()
            os.fsync(fd.fileno())
            fd.close()
            fd = None
            os.replace(tmp_path, self._path)
        except BaseException:
            if fd is not None:
                fd.close()
            if tmp_path is not None:
                try:
                    os.unlink(tmp_path)
                except OSError:
                    pass
            raise
