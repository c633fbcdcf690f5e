# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Inner path hash used by the PKG layout for integrity checking.

The hash runs over the lower-cased path while entries are stored and indexed
case-sensitively. Both halves of that asymmetry are part of the format.
"""

from __future__ import annotations

_MASK32 = 0xFFFFFFFF


def _rotate_right32(value: int, amount: int) -> int:
	return ((value >> amount) | (value << (32 - amount))) & _MASK32


def calculate_path_hash(inner_path: str) -> int:
	"""
	Return the 32-bit PKG hash of `inner_path`.

	For each code point of the lower-cased path:
	  hash = rotate_right(hash, 5) ^ code_point
	starting from 0.
	"""
	value = 0
	for ch in inner_path.lower():
		value = _rotate_right32(value, 5) ^ ord(ch)
	return value
