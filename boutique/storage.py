"""
Snapshot storage adapters.

Engines own their in-memory collections; a store only keeps the serialized
snapshot. Every adapter is best-effort: backend failures are logged and
reported as None/False, never raised to the engine.
"""
import os
import tempfile
from pathlib import Path
from typing import Dict, Optional, Protocol

from boutique.config import Settings, get_settings
from boutique.db import StorageKeys, get_redis_sync
from boutique.errors import ERROR_STORAGE_UNAVAILABLE, StorageError
from boutique.logging import get_logger

logger = get_logger(__name__)


class SnapshotStore(Protocol):
    """Durable key/value storage for serialized engine state."""

    def load(self, key: str) -> Optional[str]: ...

    def save(self, key: str, snapshot: str) -> bool: ...

    def delete(self, key: str) -> bool: ...


class BaseSnapshotStore:
    """Namespacing and error containment shared by all backends.

    Subclasses implement the _read/_write/_remove primitives and may raise
    anything; the public methods turn failures into log lines.
    """

    backend = "base"

    def __init__(self, namespace: str = ""):
        self.namespace = namespace

    def key_for(self, key: str) -> str:
        return StorageKeys.namespaced(key, self.namespace)

    def _read(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def _write(self, key: str, snapshot: str) -> None:
        raise NotImplementedError

    def _remove(self, key: str) -> None:
        raise NotImplementedError

    def load(self, key: str) -> Optional[str]:
        try:
            return self._read(self.key_for(key))
        except Exception as e:
            logger.error("Failed to load snapshot %s from %s: %s", key, self.backend, type(e).__name__)
            return None

    def save(self, key: str, snapshot: str) -> bool:
        try:
            self._write(self.key_for(key), snapshot)
            return True
        except Exception as e:
            logger.error("Failed to save snapshot %s to %s: %s", key, self.backend, type(e).__name__)
            return False

    def delete(self, key: str) -> bool:
        try:
            self._remove(self.key_for(key))
            return True
        except Exception as e:
            logger.error("Failed to delete snapshot %s from %s: %s", key, self.backend, type(e).__name__)
            return False


class MemorySnapshotStore(BaseSnapshotStore):
    """Process-local store. Used by tests and as an ephemeral fallback."""

    backend = "memory"

    def __init__(self, namespace: str = ""):
        super().__init__(namespace)
        self.data: Dict[str, str] = {}

    def _read(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def _write(self, key: str, snapshot: str) -> None:
        self.data[key] = snapshot

    def _remove(self, key: str) -> None:
        self.data.pop(key, None)


class FileSnapshotStore(BaseSnapshotStore):
    """One JSON file per key inside a device-local directory."""

    backend = "file"

    def __init__(self, directory: Path, namespace: str = ""):
        super().__init__(namespace)
        self.directory = Path(directory)

    def path_for(self, key: str) -> Path:
        # Namespaces use ":" which is not portable in file names
        return self.directory / f"{key.replace(':', '__')}.json"

    def _read(self, key: str) -> Optional[str]:
        path = self.path_for(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def _write(self, key: str, snapshot: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.path_for(key)
        # Write-then-rename so a crash never leaves a truncated snapshot
        fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=".snapshot-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(snapshot)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _remove(self, key: str) -> None:
        self.path_for(key).unlink(missing_ok=True)


class RedisSnapshotStore(BaseSnapshotStore):
    """Upstash Redis store with a TTL per snapshot."""

    backend = "redis"

    def __init__(self, client=None, namespace: str = "", ttl: Optional[int] = None):
        super().__init__(namespace)
        self._client = client
        self.ttl = ttl

    @property
    def client(self):
        """Get Redis client (lazy initialization)."""
        if self._client is None:
            try:
                self._client = get_redis_sync()
            except ValueError as e:
                raise StorageError(f"{ERROR_STORAGE_UNAVAILABLE}: {e}") from e
        return self._client

    def _read(self, key: str) -> Optional[str]:
        data = self.client.get(key)
        if data is None:
            return None
        return data.decode("utf-8") if isinstance(data, bytes) else str(data)

    def _write(self, key: str, snapshot: str) -> None:
        if self.ttl:
            self.client.set(key, snapshot, ex=self.ttl)
        else:
            self.client.set(key, snapshot)

    def _remove(self, key: str) -> None:
        self.client.delete(key)


def build_snapshot_store(settings: Optional[Settings] = None) -> BaseSnapshotStore:
    """Create the store selected by configuration."""
    settings = settings or get_settings()

    if settings.storage_backend == "memory":
        return MemorySnapshotStore(namespace=settings.storage_namespace)
    if settings.storage_backend == "redis":
        return RedisSnapshotStore(namespace=settings.storage_namespace, ttl=settings.snapshot_ttl)
    return FileSnapshotStore(settings.storage_dir, namespace=settings.storage_namespace)


_store: Optional[BaseSnapshotStore] = None


def get_snapshot_store() -> BaseSnapshotStore:
    """Get the process-wide store built from settings (singleton)."""
    global _store
    if _store is None:
        _store = build_snapshot_store()
    return _store
