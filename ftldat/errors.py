# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Structured errors raised by ftldat.

Every failure carries a stable `reason_code` so callers (and the CLI's JSON
mode) can branch on the kind of failure without parsing messages.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class PackageError(Exception):
	"""Base class for all ftldat errors."""

	reason_code: str
	message: str
	inner_path: str | None = None
	expected: Any = None
	actual: Any = None
	path: str | None = None

	def __str__(self) -> str:
		return self.format_human()

	def to_dict(self) -> dict[str, Any]:
		return {
			"error": type(self).__name__,
			"reason_code": self.reason_code,
			"message": self.message,
			"inner_path": self.inner_path,
			"expected": self.expected,
			"actual": self.actual,
			"path": self.path,
		}

	def format_human(self) -> str:
		parts: list[str] = [f"[{self.reason_code}] {self.message}"]
		if self.inner_path is not None:
			parts.append(f"inner_path={self.inner_path!r}")
		if self.expected is not None or self.actual is not None:
			parts.append(f"expected={self.expected!r}")
			parts.append(f"actual={self.actual!r}")
		if self.path is not None:
			parts.append(f"path={self.path}")
		return " ".join(parts)


class PathConflictError(PackageError):
	"""An entry with the same inner path is already present."""


class PackageReadError(PackageError):
	"""Reading a package failed; no partial package is ever returned."""


class PackageCorruptError(PackageReadError):
	"""The input does not follow the expected layout."""


class PackageWriteError(PackageError):
	"""Writing a package failed."""


class PackageExtractError(PackageError):
	"""Extracting entries to the file system failed."""


def path_exists(inner_path: str) -> PathConflictError:
	return PathConflictError(
		reason_code="path-exists",
		message="package already contains an entry under this inner path",
		inner_path=inner_path,
	)


def corrupt(reason_code: str, message: str, **context: Any) -> PackageCorruptError:
	return PackageCorruptError(reason_code=reason_code, message=message, **context)
