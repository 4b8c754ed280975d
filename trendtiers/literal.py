"""A small recursive-descent parser for script-style object literals.

Accepts what hand-edited component props tend to contain: unquoted keys,
single- or double-quoted strings, trailing commas and ``//`` or ``/* */``
comments. Only data is understood; expressions raise :class:`LiteralError`.
"""
from __future__ import annotations

from typing import Any, Dict, List

_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
}
_KEYWORDS = {"true": True, "false": False, "null": None, "undefined": None}


class LiteralError(ValueError):
    """Raised when the text is not a plain object literal."""


class _Parser:
    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def error(self, message: str) -> LiteralError:
        return LiteralError(f"{message} at offset {self.pos}")

    def peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def skip_space(self) -> None:
        text = self.text
        while self.pos < len(text):
            char = text[self.pos]
            if char.isspace():
                self.pos += 1
            elif text.startswith("//", self.pos):
                end = text.find("\n", self.pos)
                self.pos = len(text) if end == -1 else end + 1
            elif text.startswith("/*", self.pos):
                end = text.find("*/", self.pos + 2)
                if end == -1:
                    raise self.error("Unterminated comment")
                self.pos = end + 2
            else:
                break

    def expect(self, char: str) -> None:
        self.skip_space()
        if self.peek() != char:
            raise self.error(f"Expected {char!r}")
        self.pos += 1

    def value(self) -> Any:
        self.skip_space()
        char = self.peek()
        if char == "{":
            return self.obj()
        if char == "[":
            return self.array()
        if char in ("'", '"', "`"):
            return self.string()
        if char == "-" or char.isdigit() or char == ".":
            return self.number()
        word = self.identifier()
        if word in _KEYWORDS:
            return _KEYWORDS[word]
        raise self.error(f"Unexpected token {word or char!r}")

    def obj(self) -> Dict[str, Any]:
        self.expect("{")
        result: Dict[str, Any] = {}
        while True:
            self.skip_space()
            if self.peek() == "}":
                self.pos += 1
                return result
            char = self.peek()
            if char in ("'", '"'):
                key = self.string()
            elif char.isdigit():
                key = str(self.number())
            else:
                key = self.identifier()
                if not key:
                    raise self.error("Expected property name")
            self.expect(":")
            result[key] = self.value()
            self.skip_space()
            if self.peek() == ",":
                self.pos += 1
            elif self.peek() != "}":
                raise self.error("Expected ',' or '}'")

    def array(self) -> List[Any]:
        self.expect("[")
        items: List[Any] = []
        while True:
            self.skip_space()
            if self.peek() == "]":
                self.pos += 1
                return items
            items.append(self.value())
            self.skip_space()
            if self.peek() == ",":
                self.pos += 1
            elif self.peek() != "]":
                raise self.error("Expected ',' or ']'")

    def string(self) -> str:
        quote = self.peek()
        self.pos += 1
        chunks: List[str] = []
        text = self.text
        while self.pos < len(text):
            char = text[self.pos]
            if char == quote:
                self.pos += 1
                return "".join(chunks)
            if char == "\\":
                self.pos += 1
                if self.pos >= len(text):
                    break
                escaped = text[self.pos]
                if escaped == "u":
                    digits = text[self.pos + 1 : self.pos + 5]
                    try:
                        chunks.append(chr(int(digits, 16)))
                    except ValueError:
                        raise self.error("Invalid unicode escape") from None
                    self.pos += 5
                    continue
                if escaped == "\n":
                    self.pos += 1
                    continue
                chunks.append(_ESCAPES.get(escaped, escaped))
                self.pos += 1
                continue
            if quote == "`" and text.startswith("${", self.pos):
                raise self.error("Template expressions are not supported")
            chunks.append(char)
            self.pos += 1
        raise self.error("Unterminated string")

    def number(self) -> Any:
        start = self.pos
        text = self.text
        if self.peek() == "-":
            self.pos += 1
        while self.pos < len(text) and (text[self.pos].isdigit() or text[self.pos] in ".eE+-"):
            self.pos += 1
        raw = text[start : self.pos]
        try:
            if any(marker in raw for marker in ".eE"):
                return float(raw)
            return int(raw)
        except ValueError:
            raise self.error(f"Invalid number {raw!r}") from None

    def identifier(self) -> str:
        start = self.pos
        text = self.text
        while self.pos < len(text) and (text[self.pos].isalnum() or text[self.pos] in "_$"):
            self.pos += 1
        return text[start : self.pos]


def parse_literal(text: str) -> Any:
    """Parse a single literal value and reject trailing content."""

    parser = _Parser(text)
    result = parser.value()
    parser.skip_space()
    if parser.pos != len(text):
        raise parser.error("Unexpected trailing content")
    return result
