"""JSON file persistence for the backend.

The stored document is written pretty-printed. A missing file is
materialized with the default columns on first read.
"""
from __future__ import annotations

import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict

from .model import DEFAULT_COLUMNS

DEFAULT_DOCUMENT: Dict[str, Any] = {"columns": DEFAULT_COLUMNS, "tasks": []}

log = logging.getLogger(__name__)


class JsonFileStore:
    def __init__(self, path: str | Path):
        self.path = Path(path)

    def fetch(self) -> Dict[str, Any]:
        """Load the document, writing the default one first if the file does not exist."""
        if not self.path.exists():
            log.info(f"No document at {self.path}, writing default columns.")
            data = copy.deepcopy(DEFAULT_DOCUMENT)
            self.replace(data)
            return data
        with open(self.path, "r", encoding="utf-8") as f:
            return json.load(f)

    def replace(self, document: Any) -> Dict[str, Any]:
        """Persist the whole document; there are no partial updates."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(document, f, indent=2, ensure_ascii=False)
        return {"ok": True}
