"""
Training dataset sink.

Append-only JSON-lines files for fine-tuning examples, split into a
comparison file (edited responses) and a preference file (approved or
rejected responses).
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from src.config.analyzer_config import AUTOMATION_CONFIG

logger = logging.getLogger(__name__)


class DatasetSink:
    def __init__(self, datasets_dir: Optional[str] = None):
        config = AUTOMATION_CONFIG["feedback"]
        self.directory = Path(datasets_dir or config["datasets_dir"])
        self.comparison_path = self.directory / config["comparison_file"]
        self.preference_path = self.directory / config["preference_file"]

    def append_comparison(self, example: Dict[str, Any]) -> None:
        self._append(self.comparison_path, example)

    def append_preference(self, example: Dict[str, Any]) -> None:
        self._append(self.preference_path, example)

    def _append(self, path: Path, example: Dict[str, Any]) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        with open(path, "a", encoding="utf-8") as f:
            f.write(json.dumps(example, ensure_ascii=False) + "\n")
        logger.debug(f"Appended training example to {path.name}")

    def count(self) -> int:
        """Total non-empty lines across both files."""
        total = 0
        for path in (self.comparison_path, self.preference_path):
            if not path.exists():
                continue
            with open(path, "r", encoding="utf-8") as f:
                total += sum(1 for line in f if line.strip())
        return total
