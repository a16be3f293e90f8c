"""Comment-aware tokenizer for Tuple-Attribute text.

The lexer works line by line but keeps block comment state between lines, so
a ``/* ... */`` comment may span any number of lines. Each line becomes a flat
list of ``Token`` values carrying their line and column for error reporting.
"""

from __future__ import annotations

from enum import Enum
from typing import List, NamedTuple

from .errors import FormatError


class TokenKind(str, Enum):
	WORD = "word"
	STRING = "string"
	LBRACE = "{"
	RBRACE = "}"
	LPAREN = "("
	RPAREN = ")"
	EQUALS = "="


class Token(NamedTuple):
	kind: TokenKind
	text: str
	line: int
	column: int


PUNCTUATION = {
	"{": TokenKind.LBRACE,
	"}": TokenKind.RBRACE,
	"(": TokenKind.LPAREN,
	")": TokenKind.RPAREN,
	"=": TokenKind.EQUALS,
}


class TALexer:
	def __init__(self):
		self.in_block_comment = False

	def strip_comments(self, line: str) -> str:
		"""Return ``line`` with comments removed, honouring quoted strings."""
		out: List[str] = []
		i = 0
		n = len(line)
		in_string = False
		while i < n:
			pair = line[i:i + 2]
			if self.in_block_comment:
				if pair == "*/":
					self.in_block_comment = False
					out.append(" ")
					i += 2
				else:
					i += 1
				continue
			ch = line[i]
			if in_string:
				out.append(ch)
				if ch == "\\" and i + 1 < n:
					out.append(line[i + 1])
					i += 2
					continue
				if ch == '"':
					in_string = False
				i += 1
				continue
			if pair == "//":
				break
			if pair == "/*":
				self.in_block_comment = True
				i += 2
				continue
			if ch == '"':
				in_string = True
			out.append(ch)
			i += 1
		return "".join(out)

	def tokenize(self, line: str, lineno: int, punctuation: bool = True) -> List[Token]:
		"""Split one line into tokens.

		With ``punctuation`` off, braces, parentheses and ``=`` are ordinary
		word characters (relation lines).
		"""
		text = self.strip_comments(line)
		tokens: List[Token] = []
		i = 0
		n = len(text)
		while i < n:
			ch = text[i]
			if ch.isspace():
				i += 1
				continue
			if ch == '"':
				value, end = _read_string(text, i, lineno)
				tokens.append(Token(TokenKind.STRING, value, lineno, i + 1))
				i = end
				continue
			if punctuation and ch in PUNCTUATION:
				tokens.append(Token(PUNCTUATION[ch], ch, lineno, i + 1))
				i += 1
				continue
			start = i
			while i < n and not text[i].isspace() and text[i] != '"':
				if punctuation and text[i] in PUNCTUATION:
					break
				i += 1
			tokens.append(Token(TokenKind.WORD, text[start:i], lineno, start + 1))
		return tokens


# Characters str.splitlines breaks on. They never appear raw inside a quoted
# string, since the parser reads the text one line at a time.
LINE_BREAKS = "\n\r\x0b\x0c\x1c\x1d\x1e\x85\u2028\u2029"

ESCAPES = {"n": "\n", "r": "\r"}


def _read_string(text: str, start: int, lineno: int):
	chars: List[str] = []
	i = start + 1
	while i < len(text):
		ch = text[i]
		if ch == "\\" and i + 1 < len(text):
			nxt = text[i + 1]
			if nxt == "u":
				digits = text[i + 2:i + 6]
				if len(digits) != 4 or any(c not in "0123456789abcdefABCDEF" for c in digits):
					raise FormatError("bad \\u escape in string", lineno)
				chars.append(chr(int(digits, 16)))
				i += 6
				continue
			chars.append(ESCAPES.get(nxt, nxt))
			i += 2
			continue
		if ch == '"':
			return "".join(chars), i + 1
		chars.append(ch)
		i += 1
	raise FormatError("unterminated string", lineno)


def needs_quoting(value: str, punctuation: bool = True) -> bool:
	if value == "":
		return True
	if '"' in value or "\\" in value or "//" in value or "/*" in value:
		return True
	if any(ch.isspace() for ch in value):
		return True
	return punctuation and any(ch in PUNCTUATION for ch in value)


def quote(value: str, punctuation: bool = True) -> str:
	if not needs_quoting(value, punctuation):
		return value
	escaped = value.replace("\\", "\\\\").replace('"', '\\"')
	for ch in LINE_BREAKS:
		if ch in escaped:
			escaped = escaped.replace(ch, _escape_break(ch))
	return f'"{escaped}"'


def _escape_break(ch: str) -> str:
	if ch == "\n":
		return "\\n"
	if ch == "\r":
		return "\\r"
	return "\\u%04x" % ord(ch)
