# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Deferred byte-content providers for package entries.

Three variants exist, and only these three:
- `InMemorySource`: bytes owned by the entry.
- `FileSource`: a file on disk, re-read in full on every request.
- `MappedSource`: a byte range inside a `SharedMap`.

`SharedMap` is the single shared resource in the library: a read-only view of
a whole source archive (a memory map when the source has a file descriptor,
an owned buffer otherwise). Every `MappedSource` holds a strong reference to
it; the mapping is closed once the last reference is gone.

Every `content()` call returns a fresh `bytes` object. Nothing is cached.
"""

from __future__ import annotations

import mmap
import os
import weakref
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Union


class SharedMap:
	"""
	Read-only buffer over a whole source archive, shared by its entries.

	Never mutated after construction. The underlying `mmap` (if any) is closed
	by a finalizer once the object is garbage collected, i.e. when the last
	`MappedSource` referencing it is dropped.
	"""

	__slots__ = ("_buffer", "_source_path", "_file_id", "__weakref__")

	def __init__(
		self,
		buffer: mmap.mmap | bytes,
		source_path: Path | None = None,
		file_id: tuple[int, int] | None = None,
	) -> None:
		self._buffer = buffer
		self._source_path = source_path
		# (st_dev, st_ino) of the mapped file; None for owned buffers.
		self._file_id = file_id if isinstance(buffer, mmap.mmap) else None
		if isinstance(buffer, mmap.mmap):
			weakref.finalize(self, buffer.close)

	@classmethod
	def from_file(cls, f: BinaryIO, source_path: Path | None = None) -> "SharedMap":
		"""
		Map the file behind `f` read-only.

		Falls back to reading the stream into memory when it has no usable
		file descriptor (e.g. `io.BytesIO`) or cannot be mapped.
		"""
		try:
			fd = f.fileno()
		except (OSError, AttributeError, ValueError):
			fd = None
		if fd is not None:
			st = os.fstat(fd)
			if st.st_size > 0:
				try:
					return cls(mmap.mmap(fd, st.st_size, access=mmap.ACCESS_READ), source_path, (st.st_dev, st.st_ino))
				except (OSError, ValueError):
					# Not mappable (pipe, special file); read it instead.
					pass
		f.seek(0)
		return cls(f.read(), source_path)

	@classmethod
	def from_bytes(cls, data: bytes) -> "SharedMap":
		return cls(bytes(data))

	@property
	def source_path(self) -> Path | None:
		"""Path of the mapped file, when it came from one."""
		return self._source_path

	@property
	def buffer(self) -> mmap.mmap | bytes:
		"""The raw read-only buffer, for `struct.unpack_from` and friends."""
		return self._buffer

	@property
	def is_mapped(self) -> bool:
		return isinstance(self._buffer, mmap.mmap)

	def maps_file(self, path: Path) -> bool:
		"""
		True if this is a memory map of the file at `path`.

		Compares device and inode, so it also holds for maps built from an
		open stream, where `source_path` is unknown.
		"""
		if self._file_id is None:
			return False
		try:
			st = os.stat(path)
		except OSError:
			return False
		return (st.st_dev, st.st_ino) == self._file_id

	def __len__(self) -> int:
		return len(self._buffer)

	def read(self, offset: int, length: int) -> bytes:
		"""Copy `length` bytes starting at `offset` out of the buffer."""
		return bytes(self._buffer[offset : offset + length])

	def __repr__(self) -> str:
		return f"SharedMap(size={len(self)}, mapped={self.is_mapped}, source_path={self._source_path!r})"


@dataclass(frozen=True)
class InMemorySource:
	"""Content held in memory."""

	data: bytes

	def content(self) -> bytes:
		return bytes(self.data)

	def size(self) -> int:
		return len(self.data)


@dataclass(frozen=True)
class FileSource:
	"""
	Content read from a file on disk at request time.

	No handle is held between requests; if the file disappears, `content()`
	raises the underlying `OSError`.
	"""

	path: Path

	def content(self) -> bytes:
		return self.path.read_bytes()

	def size(self) -> int:
		return self.path.stat().st_size


@dataclass(frozen=True)
class MappedSource:
	"""A byte range inside a `SharedMap`."""

	shared_map: SharedMap
	offset: int
	length: int

	def __post_init__(self) -> None:
		if self.offset < 0 or self.length < 0 or self.offset + self.length > len(self.shared_map):
			raise ValueError(
				f"mapped range [{self.offset}, {self.offset + self.length}) is outside the {len(self.shared_map)}-byte source"
			)

	def content(self) -> bytes:
		return self.shared_map.read(self.offset, self.length)

	def size(self) -> int:
		return self.length


ContentSource = Union[InMemorySource, FileSource, MappedSource]
