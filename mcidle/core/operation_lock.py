"""Advisory inter-process lock with a ``threading.Lock``-like interface."""

import fcntl
import os
from pathlib import Path


class FileLock:
    """Exclusive ``flock`` on a lock file shared by all mcidle processes."""

    def __init__(self, path):
        self.path = Path(path)
        self._fd = None

    def acquire(self, blocking=True):
        """Take the lock; with ``blocking=False`` return False when held elsewhere."""
        if self._fd is not None:
            return False
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(str(self.path), os.O_RDWR | os.O_CREAT, 0o644)
        flags = fcntl.LOCK_EX if blocking else fcntl.LOCK_EX | fcntl.LOCK_NB
        try:
            fcntl.flock(fd, flags)
        except BlockingIOError:
            os.close(fd)
            return False
        os.ftruncate(fd, 0)
        os.write(fd, f"{os.getpid()}\n".encode("ascii"))
        self._fd = fd
        return True

    def release(self):
        """Release the lock; the lock file itself is left in place."""
        fd = self._fd
        if fd is None:
            raise RuntimeError("release unlocked lock")
        self._fd = None
        try:
            fcntl.flock(fd, fcntl.LOCK_UN)
        finally:
            os.close(fd)

    def locked(self):
        return self._fd is not None

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
