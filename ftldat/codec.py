# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Reader/writer contracts shared by the DAT and PKG layouts.

Readers decode a whole `SharedMap` into a `Package`; writers emit a `Package`
into a writable, seekable binary stream. `Package` only ever talks to these
two protocols, so it stays format-agnostic.

The helpers below keep every bounds check in one place: a reader never slices
past the end of its source and turns every short read into a
`PackageCorruptError` with reason `truncated`.
"""

from __future__ import annotations

import struct
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO, Protocol

from ftldat.content import SharedMap
from ftldat.errors import PackageReadError, PackageWriteError, corrupt

if TYPE_CHECKING:
	from ftldat.entry import PackageEntry
	from ftldat.package import Package

U32_MAX = 0xFFFFFFFF


class PackageReader(Protocol):
	format_name: str

	def read_package(self, shared_map: SharedMap) -> "Package":
		"""Decode every entry in `shared_map`, or raise `PackageReadError`."""
		...


class PackageWriter(Protocol):
	format_name: str

	def write_package(self, package: "Package", output: BinaryIO) -> None:
		"""Emit `package` to `output`, or raise `PackageWriteError`."""
		...


def open_shared_map(path: Path) -> SharedMap:
	"""Map the file at `path` read-only."""
	try:
		with path.open("rb") as f:
			return SharedMap.from_file(f, source_path=path.resolve())
	except OSError as err:
		raise PackageReadError(
			reason_code="io-error",
			message=f"failed to open package for reading: {err.strerror or err}",
			path=str(path),
		) from err


def shared_map_from_stream(stream: BinaryIO) -> SharedMap:
	"""Read or map a whole stream, starting from its beginning."""
	try:
		stream.seek(0)
		return SharedMap.from_file(stream)
	except OSError as err:
		raise PackageReadError(reason_code="io-error", message=f"failed to read package stream: {err}") from err


def require_range(shared_map: SharedMap, offset: int, length: int, what: str) -> None:
	end = offset + length
	if offset < 0 or end > len(shared_map):
		raise corrupt(
			"truncated",
			f"unexpected end of package while reading {what}",
			expected=end,
			actual=len(shared_map),
		)


def unpack_from(st: struct.Struct, shared_map: SharedMap, offset: int, what: str) -> tuple:
	require_range(shared_map, offset, st.size, what)
	return st.unpack_from(shared_map.buffer, offset)


def decode_inner_path(raw: bytes) -> str:
	try:
		return raw.decode("utf-8")
	except UnicodeDecodeError as err:
		raise corrupt("invalid-utf8", f"inner path is not valid UTF-8: {raw!r}") from err


def encode_inner_path(inner_path: str, *, null_terminated: bool = False) -> bytes:
	"""
	UTF-8 bytes of `inner_path` for writing.

	Layouts that store paths null-terminated cannot hold a path containing NUL.
	"""
	if null_terminated and "\0" in inner_path:
		raise PackageWriteError(
			reason_code="invalid-inner-path",
			message="inner path contains a NUL character",
			inner_path=inner_path,
		)
	try:
		return inner_path.encode("utf-8")
	except UnicodeEncodeError as err:
		raise PackageWriteError(
			reason_code="invalid-inner-path",
			message=f"inner path cannot be encoded as UTF-8: {err.reason}",
			inner_path=inner_path,
		) from err


def check_u32(value: int, reason_code: str, message: str, inner_path: str | None = None) -> int:
	if value > U32_MAX:
		raise PackageWriteError(
			reason_code=reason_code,
			message=message,
			inner_path=inner_path,
			expected=U32_MAX,
			actual=value,
		)
	return value


def entry_size(entry: "PackageEntry") -> int:
	try:
		return entry.size()
	except OSError as err:
		raise PackageWriteError(
			reason_code="io-error",
			message=f"failed to stat entry content: {err}",
			inner_path=entry.inner_path,
		) from err


def entry_content(entry: "PackageEntry") -> bytes:
	try:
		return entry.content()
	except OSError as err:
		raise PackageWriteError(
			reason_code="io-error",
			message=f"failed to read entry content: {err}",
			inner_path=entry.inner_path,
		) from err
