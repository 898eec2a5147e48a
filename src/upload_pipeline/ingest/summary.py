from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class UploadSummary:
    """Counts for one upload run."""
    source: str
    report: str
    input_path: str
    total: int
    inserted: int
    failed: int
    failure_log: Optional[Path] = None

    def render_one_line(self) -> str:
        """How each line of summary is formatted for the terminal."""
        line = f"{self.source}/{self.report}: total={self.total} inserted={self.inserted} failed={self.failed}"
        if self.failure_log is not None:
            line += f" failure_log={self.failure_log}"
        return line
