"""Archive kinds the bot accepts, and how each one is unpacked and rebuilt."""

from __future__ import annotations

import logging
import zipfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path, PurePosixPath, PureWindowsPath
from types import MappingProxyType
from typing import Callable, Mapping

from .errors import ExtractionError, PackagingError
from .utils import is_within

logger = logging.getLogger(__name__)


class ArchiveKind(str, Enum):
    """Closed set of archive formats; Slack reports them as ``filetype``."""

    ZIP = "zip"

    @classmethod
    def from_filetype(cls, filetype: str | None) -> "ArchiveKind | None":
        try:
            return cls((filetype or "").strip().lower())
        except ValueError:
            return None


def _is_unsafe_member(name: str, destination: Path) -> bool:
    if not name or name.startswith(("/", "\\")):
        return True
    if PureWindowsPath(name).drive:
        return True
    if ".." in PurePosixPath(name.replace("\\", "/")).parts:
        return True
    return not is_within(destination / name, destination)


def extract_zip(archive_path: Path, destination: Path) -> list[Path]:
    """Unpack ``archive_path`` into ``destination`` and return the written paths.

    Every member is checked before anything touches the disk; a single entry
    pointing outside ``destination`` rejects the whole archive.
    """
    destination = Path(destination)
    try:
        with zipfile.ZipFile(archive_path) as archive:
            members = archive.infolist()
            unsafe = [m.filename for m in members if _is_unsafe_member(m.filename, destination)]
            if unsafe:
                raise ExtractionError(f"Archive contains unsafe paths: {', '.join(unsafe)}")
            destination.mkdir(parents=True, exist_ok=True)
            archive.extractall(destination)
    except zipfile.BadZipFile as exc:
        raise ExtractionError(f"Malformed zip archive: {exc}") from exc
    except (OSError, RuntimeError, NotImplementedError) as exc:
        raise ExtractionError(f"Failed to extract archive: {exc}") from exc

    written = [destination / member.filename for member in members]
    logger.debug("Extracted %s entries into %s", len(written), destination)
    return written


def build_zip(source_dir: Path, output_path: Path) -> Path:
    """Pack everything under ``source_dir`` (except ``output_path`` itself) into a zip."""
    source_dir = Path(source_dir)
    output_path = Path(output_path)
    if not source_dir.is_dir():
        raise PackagingError(f"Nothing to package: {source_dir} is not a directory")

    excluded = output_path.resolve()
    entries = sorted(p for p in source_dir.rglob("*") if p.resolve() != excluded)
    if not any(entry.is_file() for entry in entries):
        raise PackagingError(f"Nothing to package: {source_dir} has no files")

    try:
        with zipfile.ZipFile(output_path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            for entry in entries:
                archive.write(entry, entry.relative_to(source_dir).as_posix())
    except OSError as exc:
        output_path.unlink(missing_ok=True)
        raise PackagingError(f"Failed to write {output_path}: {exc}") from exc

    logger.debug("Packed %s entries from %s into %s", len(entries), source_dir, output_path)
    return output_path


@dataclass(frozen=True)
class ArchiveCodec:
    kind: ArchiveKind
    suffix: str
    extract: Callable[[Path, Path], list[Path]]
    build: Callable[[Path, Path], Path]


CODECS: Mapping[ArchiveKind, ArchiveCodec] = MappingProxyType(
    {
        ArchiveKind.ZIP: ArchiveCodec(
            kind=ArchiveKind.ZIP, suffix=".zip", extract=extract_zip, build=build_zip
        ),
    }
)


def codec_for(kind: ArchiveKind) -> ArchiveCodec:
    return CODECS[kind]
