# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
ftldat: read, edit and write DAT and PKG resource archives.

Typical use:

	from ftldat import Package, PkgReader, PkgWriter

	package = Package.from_path("data.pkg", PkgReader())
	package.put_entry_from_string("data/blueprints.xml", text)
	package.to_path("data.pkg", PkgWriter(), atomic=True)

Entries read from an archive reference a shared read-only mapping of it;
write back over the source file only with `atomic=True`.
"""

from __future__ import annotations

from ftldat.codec import PackageReader, PackageWriter
from ftldat.content import ContentSource, FileSource, InMemorySource, MappedSource, SharedMap
from ftldat.dat import DatReader, DatWriter
from ftldat.entry import PackageEntry
from ftldat.errors import (
	PackageCorruptError,
	PackageError,
	PackageExtractError,
	PackageReadError,
	PackageWriteError,
	PathConflictError,
)
from ftldat.formats import DAT, FORMATS, PKG, ArchiveFormat, format_for_name, format_for_path
from ftldat.package import Package
from ftldat.path_hash import calculate_path_hash
from ftldat.pkg import PkgReader, PkgWriter

__all__ = [
	"ArchiveFormat",
	"ContentSource",
	"DAT",
	"DatReader",
	"DatWriter",
	"FORMATS",
	"FileSource",
	"InMemorySource",
	"MappedSource",
	"PKG",
	"Package",
	"PackageCorruptError",
	"PackageEntry",
	"PackageError",
	"PackageExtractError",
	"PackageReadError",
	"PackageReader",
	"PackageWriteError",
	"PackageWriter",
	"PathConflictError",
	"PkgReader",
	"PkgWriter",
	"SharedMap",
	"calculate_path_hash",
	"format_for_name",
	"format_for_path",
]
