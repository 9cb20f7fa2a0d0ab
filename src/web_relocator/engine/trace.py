"""
Debug Trace - Ordered diagnostic entries collected during one resolve call.
"""

from dataclasses import dataclass, field
from typing import Dict, List


@dataclass(frozen=True)
class DebugEntry:
    """A single diagnostic message."""
    type: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"type": self.type, "message": self.message}


@dataclass
class DebugTrace:
    """Append-only list of DebugEntry, owned by one resolve call."""
    entries: List[DebugEntry] = field(default_factory=list)

    def info(self, message: str) -> None:
        self.entries.append(DebugEntry("info", message))

    def warn(self, message: str) -> None:
        self.entries.append(DebugEntry("warn", message))

    def error(self, message: str) -> None:
        self.entries.append(DebugEntry("error", message))

    def of_type(self, entry_type: str) -> List[DebugEntry]:
        return [e for e in self.entries if e.type == entry_type]

    def __len__(self) -> int:
        return len(self.entries)
