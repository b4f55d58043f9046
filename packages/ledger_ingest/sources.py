"""File collaborators: list CSV exports in a folder and archive processed ones."""

from __future__ import annotations

import shutil
from collections.abc import Iterator
from os import PathLike
from pathlib import Path
from typing import Protocol

from .errors import ConfigurationError, StorageAdapterError
from .logging_setup import get_logger
from .models import SourceFile

_logger = get_logger("ledger_ingest.sources")


class FileSource(Protocol):
    def list_csv_files(self) -> Iterator[SourceFile]: ...


class FileArchiver(Protocol):
    def archive(self, name: str) -> None: ...


class LocalFolderSource:
    """Yield ``(name, bytes)`` for every ``*.csv`` in ``folder``, sorted by name."""

    def __init__(self, folder: str | PathLike[str]) -> None:
        self.folder = Path(folder)

    def list_csv_files(self) -> Iterator[SourceFile]:
        if not self.folder.is_dir():
            raise ConfigurationError(f"Source folder does not exist: {self.folder}")
        paths = sorted(
            (p for p in self.folder.iterdir() if p.is_file() and p.suffix.lower() == ".csv"),
            key=lambda p: p.name,
        )
        for path in paths:
            try:
                content = path.read_bytes()
            except OSError as exc:
                raise StorageAdapterError(f"Cannot read {path}: {exc}") from exc
            yield path.name, content


class FolderArchiver:
    """Move processed files from ``source_folder`` into ``archive_folder``."""

    def __init__(
        self, source_folder: str | PathLike[str], archive_folder: str | PathLike[str]
    ) -> None:
        self.source_folder = Path(source_folder)
        self.archive_folder = Path(archive_folder)

    def archive(self, name: str) -> None:
        src = self.source_folder / name
        try:
            self.archive_folder.mkdir(parents=True, exist_ok=True)
            shutil.move(src, self.archive_folder / name)
        except OSError as exc:
            raise StorageAdapterError(f"Failed to archive {name}: {exc}") from exc
        _logger.debug("Archived %s to %s", name, self.archive_folder)


class NullArchiver:
    """Archiver used when no archive folder is configured."""

    def archive(self, name: str) -> None:
        return None


__all__ = [
    "FileSource",
    "FileArchiver",
    "LocalFolderSource",
    "FolderArchiver",
    "NullArchiver",
]
