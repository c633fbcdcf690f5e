# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
The in-memory package: ordered entries plus an inner-path index.

Invariants:
- `_index` maps every inner path to the position of the entry carrying it,
  and holds nothing else.
- no two entries share an inner path.
- entry order is insertion order; writers emit entries in this order, so it
  survives a read/write round trip.

A package never holds a file handle. Entries read from an archive reference
its `SharedMap`, which stays open for as long as any such entry is alive.
"""

from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path
from typing import BinaryIO, Iterator

from ftldat.codec import PackageReader, PackageWriter, open_shared_map, shared_map_from_stream
from ftldat.entry import PackageEntry
from ftldat.errors import PackageExtractError, PackageWriteError, path_exists


class Package:
	__slots__ = ("_entries", "_index")

	def __init__(self) -> None:
		self._entries: list[PackageEntry] = []
		self._index: dict[str, int] = {}

	# Reading.

	@classmethod
	def from_path(cls, path: Path | str, reader: PackageReader) -> "Package":
		"""
		Read the archive at `path` using `reader`.

		The file is memory-mapped; the mapping lives as long as the longest-lived
		entry read from it.
		"""
		return reader.read_package(open_shared_map(Path(path)))

	@classmethod
	def from_stream(cls, stream: BinaryIO, reader: PackageReader) -> "Package":
		"""Read an archive from a readable, seekable binary stream."""
		return reader.read_package(shared_map_from_stream(stream))

	# Writing.

	def to_stream(self, stream: BinaryIO, writer: PackageWriter) -> None:
		"""Write this package to a writable, seekable binary stream."""
		writer.write_package(self, stream)

	def to_path(self, path: Path | str, writer: PackageWriter, *, atomic: bool = False) -> None:
		"""
		Write this package to `path`.

		With `atomic=False` the destination is created or truncated in place.
		That is refused when an entry of this package is still mapped from the
		destination, since truncating the file would pull bytes out from under
		the mapping.

		With `atomic=True` the package is written to a temporary file in the
		destination directory. Entries mapped from the destination are then drained
		into memory and the temporary file is renamed over the destination. This
		is the way to save a package back to the file it was read from.
		"""
		path = Path(path)
		if not atomic:
			if path.exists() and any(e.is_mapped_from(path) for e in self._entries):
				raise PackageWriteError(
					reason_code="source-in-use",
					message="destination is mapped by entries of this package; write with atomic=True",
					path=str(path),
				)
			try:
				with path.open("wb") as f:
					writer.write_package(self, f)
			except OSError as err:
				raise PackageWriteError(reason_code="io-error", message=f"failed to write package: {err}", path=str(path)) from err
			return

		fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent.resolve()))
		tmp_path = Path(tmp_name)
		try:
			with os.fdopen(fd, "wb") as f:
				writer.write_package(self, f)
			if path.exists():
				# mkstemp creates the file 0600; keep the destination's permissions.
				shutil.copymode(path, tmp_path)
				self._drain_mapped_from(path)
			os.replace(tmp_path, path)
		except OSError as err:
			tmp_path.unlink(missing_ok=True)
			raise PackageWriteError(reason_code="io-error", message=f"failed to replace package: {err}", path=str(path)) from err
		except BaseException:
			tmp_path.unlink(missing_ok=True)
			raise

	def _drain_mapped_from(self, path: Path) -> None:
		for position, entry in enumerate(self._entries):
			if entry.is_mapped_from(path):
				self._entries[position] = entry.materialized()

	def materialize(self) -> None:
		"""
		Replace every file- or map-backed entry with an in-memory copy.

		Afterwards the package no longer keeps any source mapping alive.
		"""
		self._entries = [e.materialized() for e in self._entries]

	# Mutation.

	def add_entry(self, entry: PackageEntry) -> None:
		"""
		Append `entry`.

		Raises `PathConflictError` (and leaves the package untouched) if an entry
		with the same inner path already exists.
		"""
		if entry.inner_path in self._index:
			raise path_exists(entry.inner_path)
		self._append(entry)

	def put_entry(self, entry: PackageEntry) -> None:
		"""Insert `entry`, replacing an existing entry with the same inner path at its position."""
		position = self._index.get(entry.inner_path)
		if position is None:
			self._append(entry)
		else:
			self._entries[position] = entry

	def add_entry_from_string(self, inner_path: str, content: str) -> None:
		self.add_entry(PackageEntry.from_string(inner_path, content))

	def add_entry_from_bytes(self, inner_path: str, content: bytes) -> None:
		self.add_entry(PackageEntry.from_bytes(inner_path, content))

	def add_entry_from_file(self, inner_path: str, path: Path | str) -> None:
		self.add_entry(PackageEntry.from_file(inner_path, path))

	def put_entry_from_string(self, inner_path: str, content: str) -> None:
		self.put_entry(PackageEntry.from_string(inner_path, content))

	def put_entry_from_bytes(self, inner_path: str, content: bytes) -> None:
		self.put_entry(PackageEntry.from_bytes(inner_path, content))

	def put_entry_from_file(self, inner_path: str, path: Path | str) -> None:
		self.put_entry(PackageEntry.from_file(inner_path, path))

	def remove_entry(self, inner_path: str) -> bool:
		"""
		Remove the entry under `inner_path`; return whether one was removed.

		O(n): every entry after the removed one shifts down by one and its index
		slot is rewritten.
		"""
		position = self._index.pop(inner_path, None)
		if position is None:
			return False
		del self._entries[position]
		for shifted in range(position, len(self._entries)):
			self._index[self._entries[shifted].inner_path] = shifted
		return True

	def clear(self) -> None:
		self._entries, self._index = [], {}

	def _append(self, entry: PackageEntry) -> None:
		self._index[entry.inner_path] = len(self._entries)
		self._entries.append(entry)

	# Queries.

	def entry_by_path(self, inner_path: str) -> PackageEntry | None:
		position = self._index.get(inner_path)
		return None if position is None else self._entries[position]

	def content_by_path(self, inner_path: str) -> bytes | None:
		"""Return a fresh copy of the content under `inner_path`, or None."""
		entry = self.entry_by_path(inner_path)
		return None if entry is None else entry.content()

	def string_content_by_path(self, inner_path: str) -> str | None:
		content = self.content_by_path(inner_path)
		return None if content is None else content.decode("utf-8")

	def entry_exists(self, inner_path: str) -> bool:
		return inner_path in self._index

	def inner_paths(self) -> list[str]:
		"""Inner paths in package order."""
		return [e.inner_path for e in self._entries]

	def entry_count(self) -> int:
		return len(self._entries)

	def __len__(self) -> int:
		return len(self._entries)

	def __iter__(self) -> Iterator[PackageEntry]:
		return iter(list(self._entries))

	def __contains__(self, inner_path: object) -> bool:
		return inner_path in self._index

	def __str__(self) -> str:
		return f"Package [entries: {len(self._entries)}]"

	__repr__ = __str__

	# Extraction.

	def extract(self, destination: Path | str) -> None:
		"""
		Write every entry to `destination / inner_path`, creating directories.

		Stops at the first failure. Files written before it are left in place;
		there is no rollback.

		Inner paths are used verbatim, so `..` components or an absolute first
		component can place files outside `destination`. Check the inner paths
		before extracting an archive from an untrusted source.
		"""
		root = Path(destination)
		for entry in self._entries:
			target = root.joinpath(*entry.inner_path.split("/"))
			try:
				target.parent.mkdir(parents=True, exist_ok=True)
				target.write_bytes(entry.content())
			except OSError as err:
				raise PackageExtractError(
					reason_code="io-error",
					message=f"failed to extract entry: {err}",
					inner_path=entry.inner_path,
					path=str(target),
				) from err
