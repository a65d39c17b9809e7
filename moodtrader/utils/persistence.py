"""
JSON file persistence for agent state, portfolio and trade ledgers.

Records are plain JSON-serializable dictionaries produced by the ``to_dict``
methods of the core data classes. Missing files read back as empty defaults;
unreadable files raise so that corrupt state is never silently discarded.
"""
import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from moodtrader.utils.logging import get_logger

logger = get_logger(__name__)


class JsonStore:
    """
    Simple JSON-based storage rooted at a single directory.
    """

    def __init__(self, directory: Union[str, Path]):
        """
        Initializes the store.

        Args:
            directory: Directory where all files of this store live.
        """
        self.directory = Path(directory)

    def initialize(self) -> None:
        """Ensure the storage directory exists."""
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, filename: str) -> Path:
        return self.directory / filename

    def write(self, filename: str, data: Any) -> None:
        """
        Atomically write ``data`` as JSON to ``filename``.

        The payload is written to a temporary sibling first and then renamed,
        so a crash mid-write never leaves a truncated file behind.
        """
        self.initialize()
        path = self._path(filename)
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_path, path)
        logger.debug(f"Wrote {path}")

    def read(self, filename: str) -> Optional[Any]:
        """
        Read JSON from ``filename``.

        Returns:
            The decoded payload, or None if the file does not exist.
        """
        path = self._path(filename)
        if not path.exists():
            return None
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    def append(self, filename: str, record: Dict[str, Any]) -> None:
        """Append a single record as one line to a JSONL file."""
        self.initialize()
        with open(self._path(filename), "a", encoding="utf-8") as f:
            f.write(json.dumps(record) + "\n")

    def read_lines(self, filename: str) -> List[Dict[str, Any]]:
        """Read all records from a JSONL file (empty list if missing)."""
        path = self._path(filename)
        if not path.exists():
            return []
        with open(path, "r", encoding="utf-8") as f:
            return [json.loads(line) for line in f if line.strip()]

    def write_lines(self, filename: str, records: List[Dict[str, Any]]) -> None:
        """Replace a JSONL file with the given records."""
        self.initialize()
        path = self._path(filename)
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            for record in records:
                f.write(json.dumps(record) + "\n")
        os.replace(tmp_path, path)

    def delete(self, filename: str) -> None:
        """Delete a file; already-missing files are ignored."""
        try:
            self._path(filename).unlink()
        except FileNotFoundError:
            return
