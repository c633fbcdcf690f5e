# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
PKG layout (big-endian).

Header (16 bytes):
  signature "PKG\\n" (4), header_size u16 (=16), entry_header_size u16 (=20),
  entry_count u32, path_region_size u32
Entry headers (20 bytes each):
  path_hash u32, flags u8, path_offset u24, data_offset u32, data_size u32,
  unpacked_size u32
Path region: null-terminated inner paths, `path_offset` is relative to its start.
Inner paths cannot contain NUL.
Zero padding up to the next 4-byte boundary.
Data region: entry contents in entry-header order; `data_offset` is absolute.

When the path region already ends on a 4-byte boundary no padding is written.
The game's own packer writes four zero bytes there instead, so for such
packages the output is not byte-identical to its archives (the data region
starts four bytes earlier). Readers follow the absolute data offsets, so both
read back the same.

`flags` and `path_offset` share one u32 on the wire (flags in the top byte).
"""

from __future__ import annotations

import struct
from typing import BinaryIO

from ftldat.codec import (
	check_u32,
	decode_inner_path,
	encode_inner_path,
	entry_content,
	entry_size,
	require_range,
	unpack_from,
)
from ftldat.content import SharedMap
from ftldat.entry import PackageEntry
from ftldat.errors import PackageWriteError, corrupt
from ftldat.package import Package
from ftldat.path_hash import calculate_path_hash

PKG_SIGNATURE = b"PKG\n"
HEADER_SIZE = 16
ENTRY_HEADER_SIZE = 20
PKG_DEFLATED = 0x01

U24_MAX = 0xFFFFFF

_HEADER_TAIL_STRUCT = struct.Struct(">HHII")
_HEADER_STRUCT = struct.Struct(">4sHHII")
_ENTRY_HEADER_STRUCT = struct.Struct(">IIIII")


def _padding_for(path_region_size: int) -> int:
	return -path_region_size % 4


def data_region_start(entry_count: int, path_region_size: int) -> int:
	return HEADER_SIZE + ENTRY_HEADER_SIZE * entry_count + path_region_size + _padding_for(path_region_size)


class _EntryHeader:
	__slots__ = ("position", "path_hash", "path_offset", "data_offset", "data_size")

	def __init__(self, position: int, path_hash: int, path_offset: int, data_offset: int, data_size: int) -> None:
		self.position = position
		self.path_hash = path_hash
		self.path_offset = path_offset
		self.data_offset = data_offset
		self.data_size = data_size


class PkgReader:
	format_name = "pkg"

	def read_package(self, shared_map: SharedMap) -> Package:
		self._check_signature(shared_map)
		header_size, entry_header_size, entry_count, path_region_size = unpack_from(
			_HEADER_TAIL_STRUCT, shared_map, len(PKG_SIGNATURE), "header"
		)
		if header_size != HEADER_SIZE:
			raise corrupt("header-size-mismatch", "unexpected header size", expected=HEADER_SIZE, actual=header_size)
		if entry_header_size != ENTRY_HEADER_SIZE:
			raise corrupt(
				"entry-header-size-mismatch",
				"unexpected entry header size",
				expected=ENTRY_HEADER_SIZE,
				actual=entry_header_size,
			)

		# Entry headers point into regions that come after them; read them all first.
		require_range(shared_map, HEADER_SIZE, ENTRY_HEADER_SIZE * entry_count, "entry headers")
		headers = [self._read_entry_header(shared_map, position) for position in range(entry_count)]

		path_region_offset = HEADER_SIZE + ENTRY_HEADER_SIZE * entry_count
		require_range(shared_map, path_region_offset, path_region_size, "path region")
		path_region_end = path_region_offset + path_region_size

		package = Package()
		for header in headers:
			inner_path = self._read_inner_path(shared_map, header, path_region_offset, path_region_end)
			expected_hash = calculate_path_hash(inner_path)
			if expected_hash != header.path_hash:
				raise corrupt(
					"path-hash-mismatch",
					"stored inner path hash does not match the inner path",
					inner_path=inner_path,
					expected=header.path_hash,
					actual=expected_hash,
				)
			require_range(shared_map, header.data_offset, header.data_size, f"content of '{inner_path}'")
			if package.entry_exists(inner_path):
				raise corrupt("duplicate-path", "inner path occurs more than once", inner_path=inner_path)
			package.add_entry(PackageEntry.from_mapped(inner_path, shared_map, header.data_offset, header.data_size))
		return package

	def _check_signature(self, shared_map: SharedMap) -> None:
		for position, expected in enumerate(PKG_SIGNATURE):
			require_range(shared_map, position, 1, "signature")
			actual = shared_map.buffer[position]
			if actual != expected:
				raise corrupt(
					"signature-mismatch",
					f"signature byte #{position} does not match",
					expected=expected,
					actual=actual,
				)

	def _read_entry_header(self, shared_map: SharedMap, position: int) -> _EntryHeader:
		path_hash, flags_and_path_offset, data_offset, data_size, unpacked_size = unpack_from(
			_ENTRY_HEADER_STRUCT,
			shared_map,
			HEADER_SIZE + ENTRY_HEADER_SIZE * position,
			f"entry header #{position}",
		)
		flags = flags_and_path_offset >> 24
		if flags & PKG_DEFLATED:
			raise corrupt("deflated-entry", f"entry #{position} is deflated; compressed entries are not supported")
		if flags:
			raise corrupt("unsupported-entry-flags", f"entry #{position} has unsupported flags", expected=0, actual=flags)
		if unpacked_size != data_size:
			raise corrupt(
				"unpacked-size-mismatch",
				f"entry #{position} unpacked size differs from its stored size",
				expected=data_size,
				actual=unpacked_size,
			)
		return _EntryHeader(position, path_hash, flags_and_path_offset & U24_MAX, data_offset, data_size)

	def _read_inner_path(self, shared_map: SharedMap, header: _EntryHeader, region_offset: int, region_end: int) -> str:
		start = region_offset + header.path_offset
		if start >= region_end:
			raise corrupt(
				"invalid-offset",
				f"entry #{header.position} inner path offset is outside the path region",
				expected=region_end - region_offset,
				actual=header.path_offset,
			)
		end = shared_map.buffer.find(b"\0", start, region_end)
		if end < 0:
			raise corrupt("unterminated-path", f"entry #{header.position} inner path has no null terminator")
		return decode_inner_path(shared_map.read(start, end - start))


class PkgWriter:
	format_name = "pkg"

	def write_package(self, package: Package, output: BinaryIO) -> None:
		entries = list(package)
		entry_count = check_u32(len(entries), "entry-count-exceeded", "package has more entries than a u32 can count")

		path_region = bytearray()
		headers: list[_EntryHeader] = []
		relative_data_offset = 0
		for position, entry in enumerate(entries):
			path_offset = len(path_region)
			if path_offset > U24_MAX:
				raise PackageWriteError(
					reason_code="path-offset-exceeded",
					message="inner path offset does not fit in the u24 path_offset field",
					inner_path=entry.inner_path,
					expected=U24_MAX,
					actual=path_offset,
				)
			size = check_u32(entry_size(entry), "offset-exceeded", "entry content is larger than a u32 length", entry.inner_path)
			headers.append(_EntryHeader(position, calculate_path_hash(entry.inner_path), path_offset, relative_data_offset, size))
			path_region += encode_inner_path(entry.inner_path, null_terminated=True)
			path_region.append(0)
			relative_data_offset += size

		path_region_size = check_u32(len(path_region), "path-region-exceeded", "inner paths do not fit in a u32-sized path region")
		data_start = data_region_start(entry_count, path_region_size)
		for header, entry in zip(headers, entries):
			header.data_offset = check_u32(
				data_start + header.data_offset, "offset-exceeded", "entry data offset does not fit in u32", entry.inner_path
			)

		try:
			output.seek(0)
			output.write(_HEADER_STRUCT.pack(PKG_SIGNATURE, HEADER_SIZE, ENTRY_HEADER_SIZE, entry_count, path_region_size))
			for header in headers:
				# Entries are always stored uncompressed: flags 0, unpacked_size == data_size.
				output.write(
					_ENTRY_HEADER_STRUCT.pack(header.path_hash, header.path_offset, header.data_offset, header.data_size, header.data_size)
				)
			output.write(path_region)
			output.write(b"\0" * _padding_for(path_region_size))

			output.seek(data_start)
			for header, entry in zip(headers, entries):
				content = entry_content(entry)
				if len(content) != header.data_size:
					raise PackageWriteError(
						reason_code="content-changed",
						message="entry content changed size while the package was being written",
						inner_path=entry.inner_path,
						expected=header.data_size,
						actual=len(content),
					)
				output.write(content)
			output.flush()
		except OSError as err:
			raise PackageWriteError(reason_code="io-error", message=f"failed to write PKG package: {err}") from err
