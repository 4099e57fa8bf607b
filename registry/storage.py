"""
NFT Storefront - Registry Storage Backend

This module provides JSON-based persistence for a collection with
process-safe file locking, atomic writes, optional compression and
rotated backups.
"""

import fcntl
import gzip
import hashlib
import json
import logging
import os
import shutil
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from threading import RLock, get_ident
from typing import Any, Dict, Iterator, List, Optional, Union

from pydantic import ValidationError

from .exceptions import CollectionNotDeployedError
from .schema import Collection


logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Base storage exception."""
    pass


class LockTimeoutError(StorageError):
    """Lock acquisition timeout exception."""
    pass


class IntegrityError(StorageError):
    """Stored data is unreadable or fails schema validation."""
    pass


class FileLock:
    """Inter-process lock held through an exclusive lock file."""

    def __init__(self, file_path: Union[str, Path], timeout: float = 30.0):
        self.file_path = Path(file_path)
        self.lock_file_path = self.file_path.with_suffix(self.file_path.suffix + '.lock')
        self.timeout = timeout
        self.lock_fd = None
        self._thread_lock = RLock()

    def acquire(self) -> None:
        """Acquire file lock with timeout."""
        with self._thread_lock:
            if self.lock_fd is not None:
                return

            start_time = time.time()

            while time.time() - start_time < self.timeout:
                try:
                    self.lock_fd = os.open(
                        str(self.lock_file_path),
                        os.O_CREAT | os.O_EXCL | os.O_RDWR
                    )
                except FileExistsError:
                    time.sleep(0.05)
                    continue
                except OSError as e:
                    raise StorageError(f"Failed to acquire lock: {e}")

                try:
                    fcntl.flock(self.lock_fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                    return
                except BlockingIOError:
                    os.close(self.lock_fd)
                    os.unlink(self.lock_file_path)
                    self.lock_fd = None

            raise LockTimeoutError(f"Failed to acquire lock within {self.timeout} seconds")

    def release(self) -> None:
        """Release file lock."""
        with self._thread_lock:
            if self.lock_fd is None:
                return

            try:
                fcntl.flock(self.lock_fd, fcntl.LOCK_UN)
                os.close(self.lock_fd)
                os.unlink(self.lock_file_path)
            except OSError as e:
                # Must not mask an exception raised inside the guarded block
                logger.warning(f"Failed to release lock {self.lock_file_path}: {e}")
            finally:
                self.lock_fd = None

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()


class JSONStorage:
    """JSON document storage with atomic replace and timestamped backups."""

    def __init__(
        self,
        file_path: Union[str, Path],
        compressed: bool = False,
        backup_count: int = 5,
        lock_timeout: float = 30.0
    ):
        self.file_path = Path(file_path)
        self.compressed = compressed
        self.backup_count = backup_count
        self.lock_timeout = lock_timeout
        self._lock_holder: Optional[int] = None

        self.file_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def backup_dir(self) -> Path:
        return self.file_path.parent / 'backups'

    def _calculate_checksum(self, data: bytes) -> str:
        """Calculate SHA-256 checksum of data."""
        return hashlib.sha256(data).hexdigest()

    def _read_file(self) -> bytes:
        if not self.file_path.exists():
            return b''

        if self.compressed:
            with gzip.open(self.file_path, 'rb') as f:
                return f.read()
        with open(self.file_path, 'rb') as f:
            return f.read()

    def _write_file(self, data: Dict[str, Any]) -> bytes:
        """Write data to a temporary file and rename it over the target."""
        json_data = json.dumps(data, indent=2, default=str).encode('utf-8')
        temp_file = self.file_path.with_suffix(self.file_path.suffix + '.tmp')

        try:
            if self.compressed:
                with gzip.open(temp_file, 'wb') as f:
                    f.write(json_data)
            else:
                with open(temp_file, 'wb') as f:
                    f.write(json_data)
                    f.flush()
                    os.fsync(f.fileno())

            os.replace(temp_file, self.file_path)

        except OSError as e:
            if temp_file.exists():
                temp_file.unlink()
            raise StorageError(f"Failed to write file: {e}")

        return json_data

    def _create_backup(self) -> None:
        """Copy the current file into the backup directory."""
        if not self.file_path.exists():
            return

        timestamp = datetime.now(timezone.utc).strftime('%Y%m%dT%H%M%S%f')
        backup_path = self.backup_dir / f"{self.file_path.stem}_{timestamp}{self.file_path.suffix}"
        backup_path.parent.mkdir(parents=True, exist_ok=True)

        shutil.copy2(self.file_path, backup_path)
        self._cleanup_old_backups()

    def _cleanup_old_backups(self) -> None:
        """Remove old backup files beyond backup_count."""
        for backup_file in self.list_backups()[self.backup_count:]:
            try:
                backup_file.unlink()
            except OSError as e:
                logger.warning(f"Failed to remove old backup {backup_file}: {e}")

    @contextmanager
    def _lock_context(self):
        """Hold the file lock; nested use from the holding thread does not re-acquire it."""
        if self._lock_holder == get_ident():
            yield
            return

        with FileLock(self.file_path, timeout=self.lock_timeout):
            self._lock_holder = get_ident()
            try:
                yield
            finally:
                self._lock_holder = None

    def locked(self):
        """Hold the file lock across several reads and writes."""
        return self._lock_context()

    def read(self) -> Dict[str, Any]:
        """Read and deserialize data from storage."""
        with self._lock_context():
            try:
                data = self._read_file()
            except OSError as e:
                raise StorageError(f"Failed to read storage: {e}")

            if not data:
                return {}

            try:
                return json.loads(data.decode('utf-8'))
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                raise IntegrityError(f"Invalid JSON data: {e}")

    def write(self, data: Dict[str, Any], create_backup: bool = True) -> str:
        """Write data atomically and return the checksum of the written document."""
        with self._lock_context():
            if create_backup:
                self._create_backup()

            return self._calculate_checksum(self._write_file(data))

    def exists(self) -> bool:
        return self.file_path.exists()

    def size(self) -> int:
        if not self.file_path.exists():
            return 0
        return self.file_path.stat().st_size

    def verify(self, expected_checksum: Optional[str] = None) -> bool:
        """Verify the stored document is readable and matches the checksum."""
        try:
            data = self._read_file()
        except OSError:
            return False

        if not data:
            return False
        if expected_checksum:
            return self._calculate_checksum(data) == expected_checksum
        return True

    def list_backups(self) -> List[Path]:
        """List backup files, newest first."""
        if not self.backup_dir.exists():
            return []

        pattern = f"{self.file_path.stem}_*{self.file_path.suffix}"
        return sorted(self.backup_dir.glob(pattern), key=lambda p: p.name, reverse=True)

    def restore_backup(self, backup_timestamp: str) -> bool:
        """Restore from a specific backup."""
        backup_path = self.backup_dir / f"{self.file_path.stem}_{backup_timestamp}{self.file_path.suffix}"

        if not backup_path.exists():
            return False

        with self._lock_context():
            self._create_backup()
            shutil.copy2(backup_path, self.file_path)

        return True


class CollectionStorage:
    """High-level collection storage interface."""

    FILE_NAME = "collection.json"

    def __init__(
        self,
        storage_dir: Union[str, Path] = "collection_data",
        compressed: bool = False,
        backup_count: int = 5,
        lock_timeout: float = 30.0
    ):
        self.storage_dir = Path(storage_dir)
        self.storage_dir.mkdir(parents=True, exist_ok=True)

        self.json_storage = JSONStorage(
            self.storage_dir / self.FILE_NAME,
            compressed=compressed,
            backup_count=backup_count,
            lock_timeout=lock_timeout
        )

    def is_deployed(self) -> bool:
        return self.json_storage.size() > 0

    def load_collection(self) -> Collection:
        """Load the collection from storage."""
        data = self.json_storage.read()

        if not data:
            raise CollectionNotDeployedError(f"No collection deployed in {self.storage_dir}")

        try:
            return Collection.model_validate(data)
        except ValidationError as e:
            raise IntegrityError(f"Stored collection failed validation: {e}")

    def save_collection(self, collection: Collection) -> str:
        """Save the collection and return the document checksum."""
        return self.json_storage.write(collection.model_dump(mode='json'))

    @contextmanager
    def transaction(self) -> Iterator[Collection]:
        """
        Hold the storage lock across a load, change and save.

        Yields the collection as currently stored. Changes are committed
        only by calling ``save_collection`` inside the block; other
        processes and handles on this directory wait until it exits.
        """
        with self.json_storage.locked():
            yield self.load_collection()

    def list_backups(self) -> List[str]:
        """List available backup timestamps, newest first."""
        return [backup.stem.rsplit('_', 1)[-1] for backup in self.json_storage.list_backups()]

    def restore_backup(self, timestamp: str) -> bool:
        return self.json_storage.restore_backup(timestamp)

    def get_storage_info(self) -> Dict[str, Any]:
        """Get storage information."""
        return {
            'file_path': str(self.json_storage.file_path),
            'compressed': self.json_storage.compressed,
            'size_bytes': self.json_storage.size(),
            'deployed': self.is_deployed(),
            'backup_count': len(self.json_storage.list_backups())
        }
