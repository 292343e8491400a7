"""Shared export types: output file, failures, filename rules."""

import re
from dataclasses import dataclass
from pathlib import Path


class ExportError(Exception):
    """An export could not be produced."""


class EmptyExportError(ExportError):
    """The filtered set is empty; there is nothing to export."""


@dataclass(frozen=True)
class ExportFile:
    """Bytes ready for download plus the name and media type to serve them with."""

    filename: str
    media_type: str
    content: bytes

    def write_to(self, directory: str | Path) -> Path:
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / self.filename
        path.write_bytes(self.content)
        return path


def file_stem(search_name: str) -> str:
    """Lowercase the search name and replace every non-alphanumeric with ``_``."""
    return re.sub(r"[^a-z0-9]", "_", search_name.lower())


def require_rows(rows: list, what: str) -> None:
    if not rows:
        msg = f"No {what} to export"
        raise EmptyExportError(msg)
