"""Transactional JSON document storage for storefront."""

import fcntl
import json
import logging
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from .errors import StoreCorruptedError

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

# Can be overridden via STOREFRONT_DATA_DIR environment variable
_default_data_dir = Path(__file__).parent.parent.parent / "data"
DATA_DIR = Path(os.environ.get("STOREFRONT_DATA_DIR", _default_data_dir))
STORE_FILE = "store.json"
LOCK_FILE = ".store.lock"

COLLECTIONS = ("products", "carts", "orders")


def empty_document() -> dict[str, Any]:
    """Return the document layout of a fresh store."""
    return {
        "schema_version": SCHEMA_VERSION,
        "products": {},
        "carts": {},
        "orders": {},
        "stock_movements": [],
    }


class DocumentStore:
    """
    Single-document store holding products, carts, orders and stock movements.

    Readers get the last committed document. Writers go through
    ``transaction()``, which holds an exclusive lock, re-reads the document
    and commits it with write-to-temp-then-rename only if the block finishes
    without raising.
    """

    def __init__(self, config_dir: Path | None = None):
        """
        Initialize DocumentStore.

        Args:
            config_dir: Override data directory (for testing).
        """
        self.config_dir = Path(config_dir or DATA_DIR)
        self.store_path = self.config_dir / STORE_FILE

    def _ensure_dir(self) -> None:
        """Ensure data directory exists."""
        self.config_dir.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def _lock(self) -> Iterator[None]:
        """Acquire exclusive lock on the store for read-modify-write operations."""
        self._ensure_dir()
        lock_path = self.config_dir / LOCK_FILE
        with open(lock_path, "w") as lock_file:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)

    def _load_data(self) -> dict[str, Any]:
        """Load the store document from disk."""
        if not self.store_path.exists():
            return empty_document()

        try:
            with open(self.store_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise StoreCorruptedError(str(self.store_path), f"invalid JSON ({e.msg})") from e

        version = data.get("schema_version", 0)
        if version != SCHEMA_VERSION:
            raise StoreCorruptedError(
                str(self.store_path),
                f"schema version {version}, expected {SCHEMA_VERSION}",
            )

        for name in COLLECTIONS:
            data.setdefault(name, {})
        data.setdefault("stock_movements", [])
        return data

    def _save_data(self, data: dict[str, Any]) -> None:
        """Save the store document to disk atomically."""
        self._ensure_dir()

        fd, temp_path = tempfile.mkstemp(
            dir=self.config_dir, prefix=".store_", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
                f.write("\n")
            os.replace(temp_path, self.store_path)
        except Exception:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise

    def exists(self) -> bool:
        """Check if the store document exists."""
        return self.store_path.exists()

    def snapshot(self) -> dict[str, Any]:
        """Return the last committed document. Mutating it has no effect."""
        return self._load_data()

    @contextmanager
    def transaction(self) -> Iterator[dict[str, Any]]:
        """
        Open a write transaction over the whole document.

        The yielded dict is a private copy of the latest committed state.
        It is written back when the block exits normally; any exception
        discards it, so no partial change ever becomes visible.
        """
        with self._lock():
            data = self._load_data()
            yield data
            self._save_data(data)
            logger.debug("Committed store transaction to %s", self.store_path)

    def init(self, force: bool = False) -> None:
        """Write an empty document, optionally replacing an existing one."""
        with self._lock():
            if self.exists() and not force:
                return
            self._save_data(empty_document())
