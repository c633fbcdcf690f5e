# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import json
from pathlib import Path

import pytest

from ftldat.cli import main
from ftldat.dat import DatReader
from ftldat.package import Package


@pytest.fixture
def src_tree(tmp_path: Path) -> Path:
	src = tmp_path / "src"
	(src / "data").mkdir(parents=True)
	(src / "data" / "blueprints.xml").write_text("<blueprints/>", encoding="utf-8")
	(src / "data" / "events.xml").write_text("<events/>", encoding="utf-8")
	return src


def test_pack_then_list(tmp_path: Path, src_tree: Path, capsys: pytest.CaptureFixture[str]) -> None:
	archive = tmp_path / "data.dat"
	assert main(["pack", str(src_tree), str(archive)]) == 0
	capsys.readouterr()

	assert main(["list", str(archive)]) == 0
	assert capsys.readouterr().out.splitlines() == ["data/blueprints.xml", "data/events.xml"]

	assert main(["--json", "list", str(archive)]) == 0
	assert json.loads(capsys.readouterr().out) == {"inner_paths": ["data/blueprints.xml", "data/events.xml"]}


def test_info_json(tmp_path: Path, src_tree: Path, capsys: pytest.CaptureFixture[str]) -> None:
	archive = tmp_path / "data.pkg"
	assert main(["pack", str(src_tree), str(archive)]) == 0
	capsys.readouterr()

	assert main(["--json", "info", str(archive)]) == 0
	obj = json.loads(capsys.readouterr().out)
	assert obj["format"] == "pkg"
	assert obj["entry_count"] == 2
	assert obj["total_size"] == len("<blueprints/>") + len("<events/>")


def test_add_put_remove_cat(tmp_path: Path, src_tree: Path, capsysbinary: pytest.CaptureFixture[bytes]) -> None:
	archive = tmp_path / "data.dat"
	extra = tmp_path / "extra.txt"
	extra.write_bytes(b"extra")
	assert main(["pack", str(src_tree), str(archive)]) == 0

	assert main(["add", str(archive), "extra.txt", str(extra)]) == 0
	assert main(["add", str(archive), "extra.txt", str(extra)]) == 2
	extra.write_bytes(b"replaced")
	assert main(["put", str(archive), "data/events.xml", str(extra)]) == 0
	assert main(["remove", str(archive), "data/blueprints.xml"]) == 0
	assert main(["remove", str(archive), "data/blueprints.xml"]) == 1
	capsysbinary.readouterr()

	assert main(["cat", str(archive), "data/events.xml"]) == 0
	assert capsysbinary.readouterr().out == b"replaced"
	assert main(["cat", str(archive), "missing"]) == 1

	package = Package.from_path(archive, DatReader())
	assert package.inner_paths() == ["data/events.xml", "extra.txt"]


def test_extract_and_convert(tmp_path: Path, src_tree: Path) -> None:
	archive = tmp_path / "data.dat"
	converted = tmp_path / "converted.bin"
	out = tmp_path / "out"
	assert main(["pack", str(src_tree), str(archive)]) == 0
	assert main(["convert", str(archive), str(converted), "--to", "pkg"]) == 0
	assert main(["extract", str(converted), "--format", "pkg", "--out", str(out)]) == 0
	assert (out / "data" / "events.xml").read_text(encoding="utf-8") == "<events/>"


def test_errors_exit_2(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
	bad = tmp_path / "bad.pkg"
	bad.write_bytes(b"PKX\n" + b"\0" * 12)

	assert main(["list", str(bad)]) == 2
	assert "[signature-mismatch]" in capsys.readouterr().err

	assert main(["--json", "list", str(bad)]) == 2
	obj = json.loads(capsys.readouterr().out)
	assert obj["reason_code"] == "signature-mismatch"
	assert obj["expected"] == ord("G")

	assert main(["list", str(tmp_path / "unknown.zip")]) == 2
	assert "pass --format" in capsys.readouterr().err

