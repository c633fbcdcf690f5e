# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
DAT layout (little-endian).

Layout:
  u32 entry_count
  u32 entry_offset[entry_count]     absolute offsets, in package order
  records, each at its offset:
    u32 content_length
    u32 path_length
    path bytes (UTF-8, not null-terminated)
    content bytes

The writer reserves the offset table, emits the records while recording
where each one starts, then seeks back and fills the table in.
"""

from __future__ import annotations

import struct
from typing import BinaryIO

from ftldat.codec import check_u32, decode_inner_path, encode_inner_path, entry_content, require_range, unpack_from
from ftldat.content import SharedMap
from ftldat.entry import PackageEntry
from ftldat.errors import PackageWriteError, corrupt
from ftldat.package import Package

_COUNT_STRUCT = struct.Struct("<I")
_RECORD_HEADER_STRUCT = struct.Struct("<II")
INDEX_OFFSET = _COUNT_STRUCT.size


def _offset_table_struct(entry_count: int) -> struct.Struct:
	return struct.Struct(f"<{entry_count}I")


class DatReader:
	format_name = "dat"

	def read_package(self, shared_map: SharedMap) -> Package:
		(entry_count,) = unpack_from(_COUNT_STRUCT, shared_map, 0, "entry count")
		require_range(shared_map, INDEX_OFFSET, 4 * entry_count, "offset table")
		offsets = unpack_from(_offset_table_struct(entry_count), shared_map, INDEX_OFFSET, "offset table")
		records_start = INDEX_OFFSET + 4 * entry_count

		package = Package()
		for position, offset in enumerate(offsets):
			if offset < records_start:
				raise corrupt(
					"invalid-offset",
					f"entry #{position} points into the offset table",
					expected=records_start,
					actual=offset,
				)
			content_length, path_length = unpack_from(_RECORD_HEADER_STRUCT, shared_map, offset, f"entry #{position} header")
			path_offset = offset + _RECORD_HEADER_STRUCT.size
			require_range(shared_map, path_offset, path_length, f"entry #{position} inner path")
			inner_path = decode_inner_path(shared_map.read(path_offset, path_length))
			data_offset = path_offset + path_length
			require_range(shared_map, data_offset, content_length, f"content of '{inner_path}'")
			if package.entry_exists(inner_path):
				raise corrupt("duplicate-path", "inner path occurs more than once", inner_path=inner_path)
			package.add_entry(PackageEntry.from_mapped(inner_path, shared_map, data_offset, content_length))
		return package


class DatWriter:
	format_name = "dat"

	def write_package(self, package: Package, output: BinaryIO) -> None:
		entries = list(package)
		entry_count = check_u32(len(entries), "entry-count-exceeded", "package has more entries than a u32 can count")
		encoded_paths = [encode_inner_path(entry.inner_path) for entry in entries]
		try:
			output.seek(0)
			output.write(_COUNT_STRUCT.pack(entry_count))
			# Reserve the offset table; it is filled in once every record is placed.
			output.seek(INDEX_OFFSET + 4 * entry_count)

			offsets: list[int] = []
			for entry, path_bytes in zip(entries, encoded_paths):
				offsets.append(check_u32(output.tell(), "offset-exceeded", "entry offset does not fit in u32", entry.inner_path))
				content = entry_content(entry)
				output.write(
					_RECORD_HEADER_STRUCT.pack(
						check_u32(len(content), "offset-exceeded", "entry content is larger than a u32 length", entry.inner_path),
						check_u32(len(path_bytes), "offset-exceeded", "inner path is longer than a u32 length", entry.inner_path),
					)
				)
				output.write(path_bytes)
				output.write(content)

			end = output.tell()
			output.seek(INDEX_OFFSET)
			output.write(_offset_table_struct(entry_count).pack(*offsets))
			output.seek(end)
			output.flush()
		except OSError as err:
			raise PackageWriteError(reason_code="io-error", message=f"failed to write DAT package: {err}") from err
