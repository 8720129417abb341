"""
File-backed stand-in for the remote document store.

Used for offline work (``--local``) and in tests. It speaks the same
fetch-all / overwrite-all protocol as the HTTP client.
"""

import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict

from ..domain.exceptions import RemoteStoreError

logger = logging.getLogger(__name__)


class LocalDocumentStore:
    """
    Keeps the whole dataset in a single JSON file.

    A missing file reads as an empty document. Writes go to a temporary file
    first and are renamed into place.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def fetch_document(self) -> Dict[str, Any]:
        """Load the document, or ``{}`` if nothing was saved yet."""
        with self._lock:
            if not self.path.exists():
                return {}

            try:
                with open(self.path, "r", encoding="utf-8") as f:
                    return json.load(f)
            except (json.JSONDecodeError, OSError) as e:
                raise RemoteStoreError(f"Could not read {self.path}: {e}") from e

    def push_document(self, document: Dict[str, Any]) -> None:
        """Replace the file contents with ``document``."""
        with self._lock:
            temp_path = self.path.with_suffix(self.path.suffix + ".tmp")

            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with open(temp_path, "w", encoding="utf-8") as f:
                    json.dump(document, f, indent=2, ensure_ascii=False)
                temp_path.replace(self.path)

            except OSError as e:
                if temp_path.exists():
                    temp_path.unlink()
                raise RemoteStoreError(f"Could not write {self.path}: {e}") from e

        logger.debug("Saved document to %s", self.path)
