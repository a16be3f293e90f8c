"""Exceptions raised by the TA codec and file layer."""

from __future__ import annotations

from typing import Optional


class TAError(Exception):
	"""Base exception for fact base failures."""


class UnknownTagError(TAError, ValueError):
	"""Raised when a text tag has no entity or relation kind."""


class FormatError(TAError):
	"""Raised when TA text violates the grammar. Carries the 1-based line."""

	def __init__(self, message: str, line: Optional[int] = None):
		super().__init__(message)
		self.message = message
		self.line = line

	def __str__(self) -> str:
		if self.line is None:
			return self.message
		return f"line {self.line}: {self.message}"


class TAFileError(TAError, OSError):
	"""Raised when a TA file cannot be opened, read or written."""
