# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from ftldat.errors import PackageError
from ftldat.formats import FORMATS, ArchiveFormat, format_for_path
from ftldat.package import Package
from ftldat.tools import ConvertOptions, PackOptions, convert_archive, describe_package, pack_directory


def _add_archive_args(p: argparse.ArgumentParser) -> None:
	p.add_argument("archive", type=Path, help="Path to a .dat or .pkg archive")
	p.add_argument(
		"--format",
		choices=sorted(FORMATS),
		default=None,
		help="Archive layout (default: inferred from the file extension)",
	)


def _build_parser() -> argparse.ArgumentParser:
	p = argparse.ArgumentParser(prog="ftldat", description="Inspect, unpack and repack DAT/PKG resource archives")
	p.add_argument("--json", action="store_true", help="Emit machine-readable JSON (results and errors)")
	sub = p.add_subparsers(dest="cmd", required=True)

	ls = sub.add_parser("list", help="List inner paths in archive order")
	_add_archive_args(ls)

	info = sub.add_parser("info", help="Show entry count, sizes and format")
	_add_archive_args(info)

	extract = sub.add_parser("extract", help="Extract every entry into a directory")
	_add_archive_args(extract)
	extract.add_argument("--out", type=Path, required=True, help="Destination directory")

	pack = sub.add_parser("pack", help="Pack a directory tree into a new archive")
	pack.add_argument("source_dir", type=Path, help="Directory whose files become entries")
	_add_archive_args(pack)

	for name, help_text in (
		("add", "Add a file as a new entry (fails if the inner path exists)"),
		("put", "Add or replace an entry from a file, keeping its position"),
	):
		cmd = sub.add_parser(name, help=help_text)
		_add_archive_args(cmd)
		cmd.add_argument("inner_path", type=str, help="Inner path inside the archive")
		cmd.add_argument("file", type=Path, help="File providing the entry content")

	remove = sub.add_parser("remove", help="Remove an entry")
	_add_archive_args(remove)
	remove.add_argument("inner_path", type=str, help="Inner path inside the archive")

	cat = sub.add_parser("cat", help="Write one entry's bytes to stdout")
	_add_archive_args(cat)
	cat.add_argument("inner_path", type=str, help="Inner path inside the archive")

	convert = sub.add_parser("convert", help="Re-encode an archive in the other layout")
	_add_archive_args(convert)
	convert.add_argument("dest", type=Path, help="Destination archive path")
	convert.add_argument("--to", dest="dest_format", choices=sorted(FORMATS), default=None, help="Destination layout")
	return p


def _emit(args: argparse.Namespace, obj: object, human: str | None = None) -> None:
	if args.json:
		print(json.dumps(obj, sort_keys=True, separators=(",", ":")))
	elif human is not None:
		print(human)


def _archive_format(args: argparse.Namespace) -> ArchiveFormat:
	return format_for_path(args.archive, args.format)


def _load(args: argparse.Namespace) -> tuple[Package, ArchiveFormat]:
	fmt = _archive_format(args)
	return Package.from_path(args.archive, fmt.reader), fmt


def _run(args: argparse.Namespace) -> int:
	if args.cmd == "list":
		package, _fmt = _load(args)
		paths = package.inner_paths()
		_emit(args, {"inner_paths": paths}, "\n".join(paths) if paths else None)
		return 0

	if args.cmd == "info":
		package, fmt = _load(args)
		obj = describe_package(package, args.archive, fmt)
		_emit(args, obj, f"{obj['path']}: format={obj['format']} entries={obj['entry_count']} total_size={obj['total_size']}")
		return 0

	if args.cmd == "extract":
		package, _fmt = _load(args)
		package.extract(args.out)
		_emit(args, {"extracted": package.entry_count(), "out": str(args.out)})
		return 0

	if args.cmd == "pack":
		opts = PackOptions(source_dir=args.source_dir, archive_path=args.archive, archive_format=_archive_format(args))
		package = pack_directory(opts)
		_emit(args, {"packed": package.entry_count(), "archive": str(args.archive)})
		return 0

	if args.cmd in ("add", "put"):
		package, fmt = _load(args)
		if args.cmd == "add":
			package.add_entry_from_file(args.inner_path, args.file)
		else:
			package.put_entry_from_file(args.inner_path, args.file)
		package.to_path(args.archive, fmt.writer, atomic=True)
		_emit(args, {"entry_count": package.entry_count(), "inner_path": args.inner_path})
		return 0

	if args.cmd == "remove":
		package, fmt = _load(args)
		if not package.remove_entry(args.inner_path):
			print(f"ftldat: no entry under inner path '{args.inner_path}'", file=sys.stderr)
			return 1
		package.to_path(args.archive, fmt.writer, atomic=True)
		_emit(args, {"entry_count": package.entry_count(), "removed": args.inner_path})
		return 0

	if args.cmd == "cat":
		package, _fmt = _load(args)
		content = package.content_by_path(args.inner_path)
		if content is None:
			print(f"ftldat: no entry under inner path '{args.inner_path}'", file=sys.stderr)
			return 1
		sys.stdout.buffer.write(content)
		sys.stdout.buffer.flush()
		return 0

	if args.cmd == "convert":
		opts = ConvertOptions(
			source_path=args.archive,
			source_format=_archive_format(args),
			dest_path=args.dest,
			dest_format=format_for_path(args.dest, args.dest_format),
		)
		package = convert_archive(opts)
		_emit(args, {"converted": package.entry_count(), "dest": str(args.dest), "format": opts.dest_format.name})
		return 0

	raise AssertionError("unreachable")


def main(argv: list[str] | None = None) -> int:
	p = _build_parser()
	args = p.parse_args(argv)
	try:
		return _run(args)
	except PackageError as err:
		if args.json:
			print(json.dumps(err.to_dict(), sort_keys=True, separators=(",", ":")))
		else:
			print(f"ftldat: {err.format_human()}", file=sys.stderr)
		return 2
	except (OSError, ValueError) as err:
		if args.json:
			print(json.dumps({"error": type(err).__name__, "message": str(err)}, sort_keys=True, separators=(",", ":")))
		else:
			print(f"ftldat: {err}", file=sys.stderr)
		return 2


if __name__ == "__main__":
	raise SystemExit(main())
