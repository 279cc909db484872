"""State persistence for users, grants and tiers."""

import fcntl
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from pydantic import ValidationError

from topic_acl.exceptions import ConfigError, StorageIOError
from topic_acl.store.models import StoreState

logger = logging.getLogger(__name__)


class JsonStore:
    """Single-document JSON store with file locking for read-modify-write cycles.

    The store file must already exist; use JsonStore.create() to bootstrap one.
    Transactions are reentrant within a thread: nested blocks share the outer
    state and only the outermost block writes it back.
    """

    def __init__(self, path: Path | str | None):
        if not path:
            raise ConfigError("auth file not set; auth is unconfigured")
        self.path = Path(path).expanduser()
        if not self.path.is_file():
            raise ConfigError(
                f"auth file {self.path} is not an existing file; it must be created first"
            )
        self._lock_file = self.path.with_suffix(self.path.suffix + ".lock")
        self._lock = threading.RLock()
        self._local = threading.local()

    @classmethod
    def create(cls, path: Path | str) -> "JsonStore":
        """Create an empty store file at path, keeping an existing one intact."""
        path = Path(path).expanduser()
        if not path.exists():
            path.parent.mkdir(parents=True, exist_ok=True)
            _write_atomic(path, StoreState().model_dump_json(indent=2))
            logger.info(f"Created empty auth store at {path}")
        return cls(path)

    @contextmanager
    def _file_lock(self):
        """Acquire exclusive file lock for thread-safe writes."""
        try:
            self._lock_file.touch(exist_ok=True)
            lock_handle = open(self._lock_file, "r")
        except OSError as e:
            raise StorageIOError(f"cannot lock {self.path}: {e}") from e
        with lock_handle:
            try:
                fcntl.flock(lock_handle.fileno(), fcntl.LOCK_EX)
                yield
            finally:
                fcntl.flock(lock_handle.fileno(), fcntl.LOCK_UN)

    def signature(self) -> tuple[int, int, int] | None:
        """Identify the file version on disk; every save replaces the file."""
        try:
            st = self.path.stat()
        except OSError:
            return None
        return (st.st_ino, st.st_mtime_ns, st.st_size)

    def load(self) -> StoreState:
        """Read the current state from disk."""
        try:
            data = self.path.read_text()
        except OSError as e:
            raise StorageIOError(f"cannot read {self.path}: {e}") from e
        try:
            return StoreState.model_validate_json(data or "{}")
        except ValidationError as e:
            raise StorageIOError(f"corrupt auth store {self.path}: {e}") from e

    def _save(self, state: StoreState) -> None:
        try:
            _write_atomic(self.path, state.model_dump_json(indent=2))
        except OSError as e:
            raise StorageIOError(f"cannot write {self.path}: {e}") from e

    @contextmanager
    def transaction(self) -> Iterator[StoreState]:
        """Yield the state for modification and persist it on success.

        Nothing is written if the block raises.
        """
        with self._lock:
            current = getattr(self._local, "state", None)
            if current is not None:
                yield current
                return

            with self._file_lock():
                state = self.load()
                self._local.state = state
                try:
                    yield state
                finally:
                    self._local.state = None
                self._save(state)


def _write_atomic(path: Path, content: str) -> None:
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
    try:
        with os.fdopen(fd, "w") as f:
            f.write(content)
        os.chmod(tmp_name, 0o600)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise
