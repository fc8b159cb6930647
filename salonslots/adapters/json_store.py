"""
Local JSON file store for running without a KV backend.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict

from ..domain.exceptions import StoreError
from .schedule_store import ScheduleStore

logger = logging.getLogger(__name__)


class JsonFileStore(ScheduleStore):
    """
    Keeps each collection in ``<data_dir>/<prefix>_<collection>.json``.

    Useful for local testing and demos, without requiring a hosted KV
    database.
    """

    def __init__(self, data_dir: Path, key_prefix: str = "heyu_test"):
        super().__init__(key_prefix=key_prefix)
        self.data_dir = Path(data_dir)

    def connect(self) -> None:
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StoreError(f"Could not create data directory {self.data_dir}: {exc}") from exc
        logger.debug("Using JSON file store in %s", self.data_dir)

    def _path_for(self, key: str) -> Path:
        return self.data_dir / f"{key.replace(':', '_')}.json"

    def _read_document(self, key: str) -> Any:
        path = self._path_for(key)
        if not path.exists():
            return None

        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as exc:
            raise StoreError(f"Could not read {path}: {exc}") from exc

    def _write_document(self, key: str, document: Dict[str, Any]) -> None:
        path = self._path_for(key)
        try:
            with open(path, "w", encoding="utf-8") as f:
                json.dump(document, f, ensure_ascii=False, indent=2)
        except OSError as exc:
            raise StoreError(f"Could not write {path}: {exc}") from exc
