"""Erlang term-file reader (the subset used by ``.app`` resource files).

``consult`` parses a sequence of dot-terminated terms and returns them as
Python values:

- atoms      -> ``Atom`` (a ``str`` subclass)
- strings    -> ``str`` (adjacent literals are concatenated)
- integers   -> ``int`` (``16#ff`` radix notation included)
- floats     -> ``float``
- chars      -> ``int`` (``$a`` is 97)
- binaries   -> ``bytes`` (``<<"text">>`` only)
- tuples     -> ``tuple``
- lists      -> ``list`` (proper lists only)
"""

from __future__ import annotations

import re
from functools import lru_cache
from pathlib import Path

from lark import Lark, Transformer, v_args
from lark.exceptions import LarkError, UnexpectedInput

from escript_builder.errors import FatalManifestError

GRAMMAR = r"""
start: (term ".")*

?term: atom
     | string
     | INTEGER  -> integer
     | FLOAT    -> float
     | CHAR     -> char
     | tuple
     | list
     | binary

tuple: "{" _items? "}"
list: "[" _items? "]"
binary: "<<" string? ">>"
_items: term ("," term)*

string: STRING+
atom: ATOM | QUOTED_ATOM

ATOM: /[a-z][A-Za-z0-9_@]*/
QUOTED_ATOM: /'(\\.|[^'\\])*'/
STRING: /"(\\.|[^"\\])*"/
FLOAT.2: /-?\d+\.\d+([eE][-+]?\d+)?/
INTEGER: /-?\d+(#[0-9a-zA-Z]+)?/
CHAR: /\$(\\.|[^\\])/

COMMENT: /%[^\n]*/

%import common.WS
%ignore WS
%ignore COMMENT
"""

_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "s": " ",
    "e": "\x1b",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "d": "\x7f",
    "0": "\0",
}
_ESCAPE_RE = re.compile(r"\\(.)", re.DOTALL)


class Atom(str):
    """An Erlang atom; compares equal to its plain string name."""

    def __repr__(self) -> str:
        return f"Atom({str.__repr__(self)})"


def _unescape(body: str) -> str:
    return _ESCAPE_RE.sub(lambda m: _ESCAPES.get(m.group(1), m.group(1)), body)


@v_args(inline=True)
class TermTransformer(Transformer):
    def start(self, *terms):
        return list(terms)

    def atom(self, token):
        text = str(token)
        if token.type == "QUOTED_ATOM":
            text = _unescape(text[1:-1])
        return Atom(text)

    def string(self, *tokens):
        return "".join(_unescape(str(t)[1:-1]) for t in tokens)

    def integer(self, token):
        text = str(token)
        if "#" in text:
            base, digits = text.split("#", 1)
            sign = -1 if base.startswith("-") else 1
            return sign * int(digits, abs(int(base)))
        return int(text)

    def float(self, token):
        return float(str(token))

    def char(self, token):
        return ord(_unescape(str(token)[1:]))

    def tuple(self, *items):
        return tuple(items)

    def list(self, *items):
        return list(items)

    def binary(self, text=""):
        return text.encode("utf-8")


@lru_cache(maxsize=1)
def _parser() -> Lark:
    return Lark(GRAMMAR, parser="lalr", transformer=TermTransformer())


def consult(text: str, source: str = "<string>") -> list:
    """Parse *text* as a sequence of dot-terminated terms."""
    try:
        return _parser().parse(text)
    except UnexpectedInput as exc:
        raise FatalManifestError(
            f"Invalid syntax in {source} at line {exc.line}, column {exc.column}"
        ) from exc
    except (LarkError, ValueError) as exc:
        raise FatalManifestError(f"Invalid syntax in {source}: {exc}") from exc


def decode_term_file(data: bytes) -> str:
    """Decode as UTF-8, falling back to Latin-1 the way term files are read."""
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return data.decode("latin-1")


def consult_file(path: Path) -> list:
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise FatalManifestError(f"Cannot read {path}: {exc}") from exc
    return consult(decode_term_file(data), source=str(path))
