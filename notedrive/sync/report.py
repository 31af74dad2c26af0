"""Result of a sync run."""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class SyncReport:
    """Summary of a completed sync run.

    Lists keep the order in which the actions were planned.
    """

    uploaded: list[str] = field(default_factory=list)
    """Relative paths uploaded successfully"""

    downloaded: list[str] = field(default_factory=list)
    """Relative paths downloaded successfully"""

    errors: list[str] = field(default_factory=list)
    """One message per failed transfer"""

    dry_run: bool = False
    """Whether the lists describe planned rather than performed transfers"""

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    @property
    def total_transfers(self) -> int:
        return len(self.uploaded) + len(self.downloaded)

    def to_dict(self) -> dict[str, Any]:
        """Convert report to a dictionary for JSON output."""
        return {
            "uploaded": list(self.uploaded),
            "downloaded": list(self.downloaded),
            "errors": list(self.errors),
            "dry_run": self.dry_run,
        }
