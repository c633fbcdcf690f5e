# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Whole-archive operations used by the `ftldat` command-line tool.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ftldat.formats import ArchiveFormat
from ftldat.package import Package


@dataclass(frozen=True)
class PackOptions:
	source_dir: Path
	archive_path: Path
	archive_format: ArchiveFormat


@dataclass(frozen=True)
class ConvertOptions:
	source_path: Path
	source_format: ArchiveFormat
	dest_path: Path
	dest_format: ArchiveFormat


def collect_directory(source_dir: Path) -> Package:
	"""
	Build a package from every regular file under `source_dir`.

	Inner paths are the POSIX-style relative paths, added in sorted order so
	the same tree always packs to the same bytes. Content is read lazily.
	"""
	if not source_dir.is_dir():
		raise ValueError(f"not a directory: {source_dir}")
	package = Package()
	for file_path in sorted(p for p in source_dir.rglob("*") if p.is_file()):
		package.add_entry_from_file(file_path.relative_to(source_dir).as_posix(), file_path)
	return package


def pack_directory(opts: PackOptions) -> Package:
	package = collect_directory(opts.source_dir)
	package.to_path(opts.archive_path, opts.archive_format.writer, atomic=True)
	return package


def convert_archive(opts: ConvertOptions) -> Package:
	"""Re-encode an archive in another layout, preserving entry order."""
	package = Package.from_path(opts.source_path, opts.source_format.reader)
	package.to_path(opts.dest_path, opts.dest_format.writer, atomic=True)
	return package


def describe_package(package: Package, archive_path: Path, archive_format: ArchiveFormat) -> dict[str, Any]:
	entries = [{"inner_path": e.inner_path, "size": e.size()} for e in package]
	return {
		"path": str(archive_path),
		"format": archive_format.name,
		"entry_count": len(entries),
		"total_size": sum(e["size"] for e in entries),
		"entries": entries,
	}
