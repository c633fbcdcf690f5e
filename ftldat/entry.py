# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Package entries: an inner path plus the source of its bytes.

Entries are immutable. Replacing an entry's content means building a new
entry and putting it into the package under the same inner path.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from ftldat.content import ContentSource, FileSource, InMemorySource, MappedSource, SharedMap


@dataclass(frozen=True)
class PackageEntry:
	"""A single named blob inside a package."""

	inner_path: str
	source: ContentSource

	def __post_init__(self) -> None:
		if not isinstance(self.inner_path, str):
			raise TypeError(f"inner_path must be str, got {type(self.inner_path).__name__}")

	@classmethod
	def from_string(cls, inner_path: str, content: str) -> "PackageEntry":
		"""Entry whose content is the UTF-8 encoding of `content`."""
		return cls(inner_path, InMemorySource(content.encode("utf-8")))

	@classmethod
	def from_bytes(cls, inner_path: str, content: bytes) -> "PackageEntry":
		return cls(inner_path, InMemorySource(bytes(content)))

	@classmethod
	def from_file(cls, inner_path: str, path: Path | str) -> "PackageEntry":
		"""Entry backed by a file that is read only when its content is requested."""
		return cls(inner_path, FileSource(Path(path)))

	@classmethod
	def from_mapped(cls, inner_path: str, shared_map: SharedMap, offset: int, length: int) -> "PackageEntry":
		return cls(inner_path, MappedSource(shared_map, offset, length))

	def content(self) -> bytes:
		"""Return a fresh copy of this entry's bytes."""
		return self.source.content()

	def content_string(self) -> str:
		return self.content().decode("utf-8")

	def size(self) -> int:
		return self.source.size()

	def is_mapped_from(self, path: Path) -> bool:
		"""True if this entry's bytes live in a mapping of the file at `path`."""
		return isinstance(self.source, MappedSource) and self.source.shared_map.maps_file(path)

	def materialized(self) -> "PackageEntry":
		"""Return an equivalent entry whose content is held in memory."""
		if isinstance(self.source, InMemorySource):
			return self
		return PackageEntry(self.inner_path, InMemorySource(self.content()))

	def __str__(self) -> str:
		return f"PackageEntry [inner_path: '{self.inner_path}', source: {type(self.source).__name__}]"
