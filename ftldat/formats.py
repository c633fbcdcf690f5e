# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Named archive formats.

Format choice is always explicit: either the caller names it, or (CLI only) it
follows from the file extension. Archive contents are never sniffed.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from ftldat.codec import PackageReader, PackageWriter
from ftldat.dat import DatReader, DatWriter
from ftldat.pkg import PkgReader, PkgWriter


@dataclass(frozen=True)
class ArchiveFormat:
	name: str
	extension: str
	reader: PackageReader
	writer: PackageWriter


DAT = ArchiveFormat(name="dat", extension=".dat", reader=DatReader(), writer=DatWriter())
PKG = ArchiveFormat(name="pkg", extension=".pkg", reader=PkgReader(), writer=PkgWriter())

FORMATS: dict[str, ArchiveFormat] = {f.name: f for f in (DAT, PKG)}


def format_for_name(name: str) -> ArchiveFormat:
	fmt = FORMATS.get(name.lower())
	if fmt is None:
		raise ValueError(f"unknown archive format '{name}' (expected one of: {', '.join(sorted(FORMATS))})")
	return fmt


def format_for_path(path: Path, explicit: str | None = None) -> ArchiveFormat:
	"""Pick a format by explicit name, falling back to the extension of `path`."""
	if explicit is not None:
		return format_for_name(explicit)
	suffix = path.suffix.lower()
	for fmt in FORMATS.values():
		if fmt.extension == suffix:
			return fmt
	raise ValueError(f"cannot infer archive format from '{path.name}'; pass --format")
