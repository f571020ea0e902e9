"""
Index Locking

Serialises read-modify-write cycles on local index files, across threads
of this process and across processes sharing the same directory.
"""

import contextlib
import fcntl
import threading
from pathlib import Path
from typing import Dict, Iterator, Union

_registry_lock = threading.Lock()
_thread_locks: Dict[str, threading.Lock] = {}


def _thread_lock(lock_path: Path) -> threading.Lock:
    key = str(lock_path.resolve())
    with _registry_lock:
        if key not in _thread_locks:
            _thread_locks[key] = threading.Lock()
        return _thread_locks[key]


@contextlib.contextmanager
def index_lock(lock_path: Union[str, Path]) -> Iterator[None]:
    """Hold an exclusive lock on ``lock_path`` for the duration of the block."""
    lock_path = Path(lock_path)
    lock_path.parent.mkdir(parents=True, exist_ok=True)

    with _thread_lock(lock_path):
        with open(lock_path, "a") as f:
            fcntl.flock(f, fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(f, fcntl.LOCK_UN)
