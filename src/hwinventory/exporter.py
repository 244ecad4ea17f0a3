"""
Export Pipeline

Validates the requested format, resolves a concrete output path, renders the
records and writes them atomically: the content goes to a temporary file in
the destination directory which then replaces the target path, so a failed
export never leaves a truncated file behind.
"""

import logging
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, Mapping, Optional, Union

from .errors import InvalidFormat, PathResolutionError, WriteError
from .formats import render
from .records import RecordSet
from .utils import RuntimeSettings

logger = logging.getLogger("hwinventory.exporter")

# Returns an optional first line for the given format
Annotation = Callable[["ExportFormat"], Optional[str]]


class ExportFormat(Enum):
    CSV = "csv"
    JSON = "json"
    TXT = "txt"
    XML = "xml"
    HTML = "html"

    @property
    def extension(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: Union[str, "ExportFormat"]) -> "ExportFormat":
        """
        Case-insensitive lookup.

        Raises:
            InvalidFormat: If the value is not a supported format
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                pass
        raise InvalidFormat(value, f"expected one of {', '.join(f.name for f in cls)}")


@dataclass(frozen=True)
class ExportRequest:
    """A validated export request: format plus optional path hint."""
    format: ExportFormat
    path_hint: Optional[str] = None

    @classmethod
    def create(cls, format: Union[str, ExportFormat], path_hint: Optional[Union[str, os.PathLike]] = None) -> "ExportRequest":
        hint = os.fspath(path_hint) if path_hint not in (None, "") else None
        return cls(format=ExportFormat.parse(format), path_hint=hint)


class ExportPipeline:
    """
    Writes record sets to files.

    Args:
        settings: Injected temp directory and file name timestamp formats
        clock: Returns the current time; replaceable for tests
    """

    def __init__(
        self,
        settings: Optional[RuntimeSettings] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.settings = settings or RuntimeSettings.from_config()
        self.clock = clock

    def export(
        self,
        records: Union[RecordSet, Iterable[Mapping]],
        format: Union[str, ExportFormat],
        path_hint: Optional[Union[str, os.PathLike]] = None,
        entity_name: str = "Inventory",
        annotation: Optional[Annotation] = None,
    ) -> Path:
        """
        Export records to a file.

        Args:
            records: Records to write; never modified
            format: One of CSV, JSON, TXT, XML, HTML (any case)
            path_hint: Target file, target directory, or None for the temp dir
            entity_name: Prefix of generated file names
            annotation: Optional hook returning a header line for the format

        Returns:
            The path written

        Raises:
            InvalidFormat: Before any I/O if the format is unsupported
            PathResolutionError: If the destination directory is unusable
            WriteError: If writing the file fails
        """
        request = ExportRequest.create(format, path_hint)
        if not isinstance(records, RecordSet):
            records = RecordSet(records)

        path = self.resolve_path(request, entity_name)
        content = render(records, request.format.extension)

        if annotation is not None:
            header = annotation(request.format)
            if header:
                content = header.rstrip("\n") + "\n" + content

        self.write(path, content)
        logger.info(f"Exported {len(records)} records to {path}")
        return path

    def resolve_path(self, request: ExportRequest, entity_name: str) -> Path:
        """
        Work out where the export goes.

        No hint writes a timestamped file to the temp directory, a directory
        hint writes a timestamped file inside it, and anything else is taken
        verbatim as the file path.
        """
        ext = request.format.extension
        now = self.clock()

        if request.path_hint is None:
            stamp = now.strftime(self.settings.default_timestamp_format)
            path = self._unique(self.settings.temp_dir, f"{entity_name}_{stamp}", ext)
        else:
            hint = Path(request.path_hint).expanduser()
            if hint.is_dir():
                stamp = now.strftime(self.settings.directory_timestamp_format)
                path = self._unique(hint, f"{entity_name}_{stamp}", ext)
            else:
                path = hint

        parent = path.parent
        if not parent.is_dir():
            raise PathResolutionError(str(path), f"directory {parent} does not exist")
        if not os.access(parent, os.W_OK):
            raise PathResolutionError(str(path), f"directory {parent} is not writable")
        return path

    @staticmethod
    def _unique(directory: Path, stem: str, ext: str) -> Path:
        """Generated names get a numeric suffix rather than clobbering a file."""
        path = directory / f"{stem}.{ext}"
        counter = 1
        while path.exists():
            path = directory / f"{stem}_{counter}.{ext}"
            counter += 1
        return path

    @staticmethod
    def write(path: Path, content: str) -> None:
        """Atomically replace ``path`` with ``content``."""
        tmp_name = None
        try:
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent)
            )
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                f.write(content)
            os.chmod(tmp_name, 0o644)
            os.replace(tmp_name, path)
            tmp_name = None
        except OSError as e:
            raise WriteError(str(path), e.strerror or str(e)) from e
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass


def export(
    records: Union[RecordSet, Iterable[Mapping]],
    format: Union[str, ExportFormat],
    path_hint: Optional[Union[str, os.PathLike]] = None,
    entity_name: str = "Inventory",
    settings: Optional[RuntimeSettings] = None,
) -> Path:
    """Convenience wrapper around ``ExportPipeline(settings).export``."""
    return ExportPipeline(settings).export(records, format, path_hint, entity_name)
