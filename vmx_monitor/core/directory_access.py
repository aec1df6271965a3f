"""
Directory capabilities: revocable read access to one user-chosen folder.

A capability is what the user granted, not a path string. It can list its
entries and read one entry's bytes; anything else (including whether the
grant still works) is found out by trying. Capabilities are persisted only
through their record form, and rebuilt through the kind registry below.
"""

import logging
import mimetypes
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable

from vmx_monitor.core.models import DirectoryEntry

logger = logging.getLogger(__name__)


class DirectoryCapability(ABC):
    """Read access to a single directory."""

    kind = "abstract"

    @property
    @abstractmethod
    def name(self) -> str:
        """Display name of the directory (not a locator)."""

    @abstractmethod
    def enumerate(self) -> list[DirectoryEntry]:
        """List the directory's immediate entries. Raises OSError on failure."""

    @abstractmethod
    def open_entry(self, name: str) -> bytes:
        """Return the full content of one file entry. Raises OSError on failure."""

    @abstractmethod
    def to_record(self) -> dict:
        """Plain-data form used by the handle store."""


class LocalDirectory(DirectoryCapability):
    """Capability backed by a directory on a local or mounted filesystem."""

    kind = "local"

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def __repr__(self):
        return f"LocalDirectory({str(self.path)!r})"

    @property
    def name(self) -> str:
        return self.path.name or str(self.path)

    def enumerate(self) -> list[DirectoryEntry]:
        entries = []
        # iterdir raises for a missing or unreadable directory
        for item in self.path.iterdir():
            try:
                if not item.is_file():
                    entries.append(DirectoryEntry(name=item.name, is_file=False))
                    continue
                stat = item.stat()
            except OSError as e:
                # Entry vanished between listing and stat
                logger.debug("Skipping %s: %s", item, e)
                continue
            mime, _ = mimetypes.guess_type(item.name)
            entries.append(DirectoryEntry(
                name=item.name,
                is_file=True,
                size=stat.st_size,
                last_modified=int(stat.st_mtime * 1000),
                mime_type=mime or "unknown",
            ))
        return entries

    def open_entry(self, name: str) -> bytes:
        if Path(name).name != name:
            raise FileNotFoundError(f"Not an entry of {self.name}: {name}")
        return (self.path / name).read_bytes()

    def to_record(self) -> dict:
        return {"kind": self.kind, "name": self.name, "location": str(self.path)}


# ── Record registry ───────────────────────────────────────────────────

_FACTORIES: dict[str, Callable[[dict], DirectoryCapability]] = {
    LocalDirectory.kind: lambda record: LocalDirectory(record["location"]),
}


def capability_from_record(record: dict) -> DirectoryCapability | None:
    """Rebuild a capability from its record, or None for unknown/broken records."""
    if not isinstance(record, dict):
        logger.warning("Capability record is not an object: %r", record)
        return None
    factory = _FACTORIES.get(record.get("kind", ""))
    if factory is None:
        logger.warning("Unknown capability kind in record: %r", record.get("kind"))
        return None
    try:
        return factory(record)
    except (KeyError, TypeError, ValueError) as e:
        logger.warning("Broken capability record %r: %s", record, e)
        return None
