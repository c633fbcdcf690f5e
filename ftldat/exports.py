# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Exports table for embedding ftldat in a host interpreter.

`init()` returns the functions the host registers under its module table.
Each one delegates to a `Package` operation on an opaque `PackageHandle` and
turns every library failure into `HostError`, the single error type the
host surfaces to its scripts.
"""

from __future__ import annotations

from functools import wraps
from pathlib import Path
from typing import Any, Callable

from ftldat.errors import PackageError
from ftldat.formats import DAT, PKG, ArchiveFormat
from ftldat.package import Package


class HostError(RuntimeError):
	"""Error raised into the host; carries the formatted library message."""

	def __init__(self, message: str, reason_code: str | None = None) -> None:
		super().__init__(message)
		self.reason_code = reason_code


class PackageHandle:
	"""Opaque package reference handed to the host."""

	__slots__ = ("package",)

	def __init__(self, package: Package) -> None:
		self.package = package

	def __repr__(self) -> str:
		return f"PackageHandle({self.package})"


def _translate_errors(fn: Callable[..., Any]) -> Callable[..., Any]:
	@wraps(fn)
	def wrapper(*args: Any, **kwargs: Any) -> Any:
		try:
			return fn(*args, **kwargs)
		except PackageError as err:
			raise HostError(err.format_human(), reason_code=err.reason_code) from err
		except OSError as err:
			raise HostError(f"[io-error] {err}", reason_code="io-error") from err
		except UnicodeDecodeError as err:
			raise HostError(f"[invalid-utf8] entry content is not valid UTF-8: {err}", reason_code="invalid-utf8") from err

	return wrapper


def _handle(value: Any) -> PackageHandle:
	if not isinstance(value, PackageHandle):
		raise HostError(f"expected a package handle, got {type(value).__name__}")
	return value


def new() -> PackageHandle:
	return PackageHandle(Package())


def _open(fmt: ArchiveFormat) -> Callable[[str], PackageHandle]:
	def open_archive(path: str) -> PackageHandle:
		return PackageHandle(Package.from_path(Path(path), fmt.reader))

	open_archive.__name__ = f"open_{fmt.name}"
	return open_archive


def _save(fmt: ArchiveFormat) -> Callable[[PackageHandle, str], None]:
	def save_archive(handle: PackageHandle, path: str) -> None:
		_handle(handle).package.to_path(Path(path), fmt.writer, atomic=True)

	save_archive.__name__ = f"save_{fmt.name}"
	return save_archive


def add_string(handle: PackageHandle, inner_path: str, content: str) -> None:
	_handle(handle).package.add_entry_from_string(inner_path, content)


def add_bytes(handle: PackageHandle, inner_path: str, content: bytes) -> None:
	_handle(handle).package.add_entry_from_bytes(inner_path, content)


def put_string(handle: PackageHandle, inner_path: str, content: str) -> None:
	_handle(handle).package.put_entry_from_string(inner_path, content)


def put_bytes(handle: PackageHandle, inner_path: str, content: bytes) -> None:
	_handle(handle).package.put_entry_from_bytes(inner_path, content)


def read_string(handle: PackageHandle, inner_path: str) -> str | None:
	return _handle(handle).package.string_content_by_path(inner_path)


def read_bytes(handle: PackageHandle, inner_path: str) -> bytes | None:
	return _handle(handle).package.content_by_path(inner_path)


def remove(handle: PackageHandle, inner_path: str) -> bool:
	return _handle(handle).package.remove_entry(inner_path)


def exists(handle: PackageHandle, inner_path: str) -> bool:
	return _handle(handle).package.entry_exists(inner_path)


def clear(handle: PackageHandle) -> None:
	_handle(handle).package.clear()


def paths(handle: PackageHandle) -> list[str]:
	return _handle(handle).package.inner_paths()


def count(handle: PackageHandle) -> int:
	return _handle(handle).package.entry_count()


def init() -> dict[str, Callable[..., Any]]:
	"""Build the exports table, governing what the host can call."""
	functions: dict[str, Callable[..., Any]] = {
		"new": new,
		"open_dat": _open(DAT),
		"open_pkg": _open(PKG),
		"save_dat": _save(DAT),
		"save_pkg": _save(PKG),
		"add_string": add_string,
		"add_bytes": add_bytes,
		"put_string": put_string,
		"put_bytes": put_bytes,
		"read_string": read_string,
		"read_bytes": read_bytes,
		"remove": remove,
		"exists": exists,
		"clear": clear,
		"paths": paths,
		"count": count,
	}
	return {name: _translate_errors(fn) for name, fn in functions.items()}
