"""
Local JSON-file store, the fallback when no hosted database is configured.
"""

from __future__ import annotations

import json
import os
from pathlib import Path

from mindlock.logger import setup_logger
from mindlock.store.memory import InMemoryStore
from mindlock.utils.exceptions import PersistenceError
from mindlock.utils.helpers import ensure_dir, format_json

logger = setup_logger(__name__)


class JsonFileStore(InMemoryStore):
    """
    Keeps every collection in one JSON file and rewrites it after each write.

    A missing file starts from the sample data (when `seed` is set) and is
    created on the first write.
    """

    def __init__(self, path: str | Path, seed: bool = True) -> None:
        self.path = Path(path)

        if self.path.exists():
            super().__init__(seed=False)
            self.load_documents(self._read())
            logger.info(f"📂 Loaded store from {self.path}")
        else:
            super().__init__(seed=seed)
            logger.info(f"📂 No store file at {self.path}, starting fresh")

    def _read(self) -> dict:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(f"Failed to read {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise PersistenceError(f"Unexpected store format in {self.path}")
        return data

    async def _commit(self) -> None:
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            ensure_dir(self.path.parent)
            with open(tmp_path, "w", encoding="utf-8") as f:
                f.write(format_json(self.dump_documents()))
            os.replace(tmp_path, self.path)
        except OSError as e:
            logger.error(f"❌ Failed to write store file {self.path}: {e}")
            raise PersistenceError(f"Failed to write {self.path}: {e}") from e
