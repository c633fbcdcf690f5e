# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import io
from pathlib import Path

import pytest

from ftldat.dat import DatReader, DatWriter
from ftldat.errors import PackageExtractError, PackageReadError, PackageWriteError
from ftldat.formats import DAT, PKG, format_for_name, format_for_path
from ftldat.package import Package
from ftldat.pkg import PkgReader, PkgWriter
from ftldat.tools import ConvertOptions, PackOptions, collect_directory, convert_archive, describe_package, pack_directory


def _sample() -> Package:
	package = Package()
	package.add_entry_from_string("data/blueprints.xml", "<blueprints/>")
	package.add_entry_from_string("data/events.xml", "<events/>")
	package.add_entry_from_bytes("img/icon.png", b"\x89PNG\r\n\x1a\n")
	return package


def test_missing_file_is_an_io_error(tmp_path: Path) -> None:
	with pytest.raises(PackageReadError) as excinfo:
		Package.from_path(tmp_path / "nope.dat", DatReader())
	assert excinfo.value.reason_code == "io-error"


def test_from_stream_reads_in_memory_archive() -> None:
	out = io.BytesIO()
	_sample().to_stream(out, DatWriter())
	package = Package.from_stream(io.BytesIO(out.getvalue()), DatReader())
	assert package.string_content_by_path("data/events.xml") == "<events/>"


def test_atomic_write_back_to_the_source_file(tmp_path: Path) -> None:
	archive = tmp_path / "data.dat"
	_sample().to_path(archive, DatWriter())

	package = Package.from_path(archive, DatReader())
	package.put_entry_from_string("data/events.xml", "<events>changed</events>")
	package.add_entry_from_string("new.txt", "new")
	package.to_path(archive, DatWriter(), atomic=True)

	# Entries still in the package remain readable after the rename.
	assert package.content_by_path("img/icon.png") == b"\x89PNG\r\n\x1a\n"
	again = Package.from_path(archive, DatReader())
	assert again.inner_paths() == ["data/blueprints.xml", "data/events.xml", "img/icon.png", "new.txt"]
	assert again.string_content_by_path("data/events.xml") == "<events>changed</events>"
	assert [p.name for p in tmp_path.iterdir()] == ["data.dat"]


def test_non_atomic_write_to_mapped_source_is_refused(tmp_path: Path) -> None:
	archive = tmp_path / "data.pkg"
	_sample().to_path(archive, PkgWriter())
	before = archive.read_bytes()

	package = Package.from_path(archive, PkgReader())
	with pytest.raises(PackageWriteError) as excinfo:
		package.to_path(archive, PkgWriter())
	assert excinfo.value.reason_code == "source-in-use"
	assert archive.read_bytes() == before


def test_non_atomic_write_after_materialize_is_allowed(tmp_path: Path) -> None:
	archive = tmp_path / "data.pkg"
	_sample().to_path(archive, PkgWriter())

	package = Package.from_path(archive, PkgReader())
	package.remove_entry("data/events.xml")
	package.materialize()
	package.to_path(archive, PkgWriter())

	assert Package.from_path(archive, PkgReader()).inner_paths() == ["data/blueprints.xml", "img/icon.png"]


def test_failed_atomic_write_leaves_destination_untouched(tmp_path: Path) -> None:
	archive = tmp_path / "data.dat"
	_sample().to_path(archive, DatWriter())
	before = archive.read_bytes()

	package = Package()
	package.add_entry_from_file("gone.txt", tmp_path / "missing.txt")
	with pytest.raises(PackageWriteError) as excinfo:
		package.to_path(archive, DatWriter(), atomic=True)
	assert excinfo.value.reason_code == "io-error"
	assert excinfo.value.inner_path == "gone.txt"
	assert archive.read_bytes() == before
	assert [p.name for p in tmp_path.iterdir()] == ["data.dat"]


def test_extract_writes_nested_files(tmp_path: Path) -> None:
	out = tmp_path / "out"
	_sample().extract(out)

	assert (out / "data" / "blueprints.xml").read_text(encoding="utf-8") == "<blueprints/>"
	assert (out / "data" / "events.xml").read_text(encoding="utf-8") == "<events/>"
	assert (out / "img" / "icon.png").read_bytes() == b"\x89PNG\r\n\x1a\n"


def test_extract_stops_at_first_failure(tmp_path: Path) -> None:
	out = tmp_path / "out"
	out.mkdir()
	(out / "img").write_text("a file where a directory should be", encoding="utf-8")

	with pytest.raises(PackageExtractError) as excinfo:
		_sample().extract(out)
	assert excinfo.value.inner_path == "img/icon.png"
	# Entries before the failing one were written and are left in place.
	assert (out / "data" / "events.xml").exists()


def test_format_lookup() -> None:
	assert format_for_name("pkg") is PKG
	assert format_for_path(Path("x/data.DAT")) is DAT
	assert format_for_path(Path("resource.pkg")) is PKG
	assert format_for_path(Path("blob.bin"), "dat") is DAT
	with pytest.raises(ValueError):
		format_for_path(Path("blob.bin"))
	with pytest.raises(ValueError):
		format_for_name("zip")


def test_convert_dat_to_pkg_and_back(tmp_path: Path) -> None:
	dat = tmp_path / "data.dat"
	pkg = tmp_path / "data.pkg"
	back = tmp_path / "back.dat"
	_sample().to_path(dat, DatWriter())

	convert_archive(ConvertOptions(source_path=dat, source_format=DAT, dest_path=pkg, dest_format=PKG))
	convert_archive(ConvertOptions(source_path=pkg, source_format=PKG, dest_path=back, dest_format=DAT))

	assert Package.from_path(pkg, PkgReader()).inner_paths() == _sample().inner_paths()
	assert back.read_bytes() == dat.read_bytes()


def test_pack_directory_uses_sorted_posix_paths(tmp_path: Path) -> None:
	src = tmp_path / "src"
	(src / "data").mkdir(parents=True)
	(src / "img").mkdir()
	(src / "img" / "b.png").write_bytes(b"b")
	(src / "data" / "a.xml").write_bytes(b"a")
	(src / "readme.txt").write_bytes(b"r")
	archive = tmp_path / "out.pkg"

	pack_directory(PackOptions(source_dir=src, archive_path=archive, archive_format=PKG))

	package = Package.from_path(archive, PkgReader())
	assert package.inner_paths() == ["data/a.xml", "img/b.png", "readme.txt"]
	assert package.content_by_path("img/b.png") == b"b"


def test_collect_directory_rejects_files(tmp_path: Path) -> None:
	f = tmp_path / "f.txt"
	f.write_text("x", encoding="utf-8")
	with pytest.raises(ValueError):
		collect_directory(f)


def test_describe_package() -> None:
	info = describe_package(_sample(), Path("data.dat"), DAT)
	assert info["format"] == "dat"
	assert info["entry_count"] == 3
	assert info["total_size"] == len("<blueprints/>") + len("<events/>") + 8
	assert info["entries"][0] == {"inner_path": "data/blueprints.xml", "size": 13}


def test_non_atomic_write_to_stream_mapped_file_is_refused(tmp_path: Path) -> None:
	archive = tmp_path / "data.dat"
	package = Package()
	package.add_entry_from_bytes("a.bin", b"a" * 100_000)
	package.add_entry_from_bytes("b.bin", b"b" * 100_000)
	package.to_path(archive, DatWriter())
	before = archive.read_bytes()

	with archive.open("rb") as f:
		opened = Package.from_stream(f, DatReader())
	entry = opened.entry_by_path("a.bin")
	assert entry is not None
	assert entry.source.shared_map.source_path is None
	assert entry.is_mapped_from(archive)

	with pytest.raises(PackageWriteError) as excinfo:
		opened.to_path(archive, DatWriter())
	assert excinfo.value.reason_code == "source-in-use"
	assert archive.read_bytes() == before

	opened.put_entry_from_string("c.txt", "c")
	opened.to_path(archive, DatWriter(), atomic=True)
	assert Package.from_path(archive, DatReader()).inner_paths() == ["a.bin", "b.bin", "c.txt"]


def test_other_file_is_not_mistaken_for_the_mapped_source(tmp_path: Path) -> None:
	archive = tmp_path / "data.dat"
	copy = tmp_path / "copy.dat"
	_sample().to_path(archive, DatWriter())
	copy.write_bytes(archive.read_bytes())

	package = Package.from_path(archive, DatReader())
	package.to_path(copy, DatWriter())
	assert copy.read_bytes() == archive.read_bytes()


def test_atomic_write_keeps_destination_permissions(tmp_path: Path) -> None:
	archive = tmp_path / "data.pkg"
	_sample().to_path(archive, PkgWriter())
	archive.chmod(0o644)

	package = Package.from_path(archive, PkgReader())
	package.add_entry_from_string("more.txt", "more")
	package.to_path(archive, PkgWriter(), atomic=True)

	assert archive.stat().st_mode & 0o777 == 0o644


def test_extract_uses_inner_paths_verbatim(tmp_path: Path) -> None:
	package = Package()
	package.add_entry_from_string("../beside.txt", "outside")
	(tmp_path / "out").mkdir()
	package.extract(tmp_path / "out")
	assert (tmp_path / "beside.txt").read_text(encoding="utf-8") == "outside"
