"""Session stores -- durable key-value state for the authentication context.

A session holds the credentials that must survive between process runs:

==================  ====================================================
Key                 Meaning
==================  ====================================================
``username``        Account the tokens were issued for.
``accessToken``     Current access token.
``tokenType``       ``Authorization`` scheme of the access token.
``expires``         Expiry as epoch seconds; absent/``None`` = never.
``refreshToken``    Refresh token, if the server issued one.
==================  ====================================================

:class:`Session` keeps its data in memory.  :class:`FileSession` persists
to ``<data dir>/sessions/<session_id>.json`` with ``0o600`` permissions
using atomic writes, the same way the credential files are written.

Both track a dirty flag so that :meth:`Session.save` only touches the
backing store when something changed since the last load or save.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Iterator, Mapping, Optional

from platformclient.config import atomic_write, get_data_dir

SESSION_KEYS = ("username", "accessToken", "tokenType", "expires", "refreshToken")

_SESSION_ID_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


class Session:
    """In-memory session store.

    ``save()`` has nothing to flush and only resets the dirty flag.
    Subclasses override :meth:`_load` and :meth:`_write` to add a durable
    backing.

    Args:
        data: Initial contents.  Values of ``None`` are treated as absent.

    Example::

        session = Session()
        session.set("accessToken", "tok123")
        assert session.has("accessToken")
    """

    def __init__(self, data: Optional[Mapping[str, Any]] = None) -> None:
        self._data: dict[str, Any] = {}
        self._dirty = False
        self._data.update(self._load())
        if data:
            self.add(data)

    def get(self, key: str, default: Any = None) -> Any:
        value = self._data.get(key)
        return default if value is None else value

    def set(self, key: str, value: Any) -> None:
        if self._data.get(key) != value or key not in self._data:
            self._data[key] = value
            self._dirty = True

    def add(self, values: Mapping[str, Any]) -> None:
        """Set several keys at once."""
        for key, value in values.items():
            self.set(key, value)

    def has(self, key: str) -> bool:
        """Return ``True`` if *key* holds a non-``None`` value."""
        return self._data.get(key) is not None

    def clear(self) -> None:
        """Remove every key."""
        if self._data:
            self._data.clear()
            self._dirty = True

    def save(self) -> None:
        """Flush pending changes to the backing store.

        Calling this repeatedly without intervening mutations is a no-op.
        """
        if not self._dirty:
            return
        self._write(self.to_dict())
        self._dirty = False

    @property
    def is_dirty(self) -> bool:
        """Whether there are changes not yet saved."""
        return self._dirty

    def to_dict(self) -> dict[str, Any]:
        """Return a copy of the stored keys, omitting ``None`` values."""
        return {k: v for k, v in self._data.items() if v is not None}

    def copy(self) -> Session:
        """Return a detached in-memory snapshot of this session."""
        return Session(self.to_dict())

    def _load(self) -> dict[str, Any]:
        return {}

    def _write(self, data: dict[str, Any]) -> None:
        pass

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.has(key)

    def __iter__(self) -> Iterator[str]:
        return iter(self.to_dict())

    def __repr__(self) -> str:
        # Never include token values.
        return f"{type(self).__name__}(keys={sorted(self.to_dict())})"


def _sessions_dir() -> Path:
    """Return the sessions directory, creating it if needed."""
    path = get_data_dir() / "sessions"
    path.mkdir(parents=True, exist_ok=True)
    return path


class FileSession(Session):
    """Session persisted as a JSON file, one file per session id.

    A missing or corrupted file loads as an empty session.  Saving an empty
    session removes the file.

    Args:
        session_id: Identifier used to derive the file name.  Must match
            ``[A-Za-z0-9_.-]+``.
        path: Explicit file path, overriding the data directory location.

    Raises:
        ValueError: If *session_id* contains unsupported characters.
    """

    def __init__(self, session_id: str = "default", path: Optional[Path] = None) -> None:
        if not _SESSION_ID_RE.match(session_id):
            raise ValueError(f"Invalid session id: {session_id!r}")
        self._session_id = session_id
        self._path = Path(path) if path is not None else _sessions_dir() / f"{session_id}.json"
        super().__init__()

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def path(self) -> Path:
        """The filesystem path of this session's file."""
        return self._path

    def _load(self) -> dict[str, Any]:
        if not self._path.is_file():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, ValueError, OSError):
            return {}
        if not isinstance(data, dict):
            return {}
        return data

    def _write(self, data: dict[str, Any]) -> None:
        if not data:
            if self._path.is_file():
                self._path.unlink()
            return
        atomic_write(self._path, json.dumps(data, indent=2) + "\n", mode=0o600)
