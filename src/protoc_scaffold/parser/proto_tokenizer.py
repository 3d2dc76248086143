"""Tokenizer for protobuf (.proto) files."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import List

from protoc_scaffold.errors import ProtoParseError


class ProtoTokenType(Enum):
    # Keywords
    SYNTAX = auto()
    EDITION = auto()
    PACKAGE = auto()
    IMPORT = auto()
    OPTION = auto()
    MESSAGE = auto()
    ENUM = auto()
    SERVICE = auto()
    RPC = auto()
    RETURNS = auto()
    STREAM = auto()
    REPEATED = auto()
    OPTIONAL = auto()
    REQUIRED = auto()
    ONEOF = auto()
    MAP = auto()
    RESERVED = auto()
    EXTENSIONS = auto()
    EXTEND = auto()
    GROUP = auto()

    # Delimiters
    LBRACE = auto()
    RBRACE = auto()
    LPAREN = auto()
    RPAREN = auto()
    LBRACKET = auto()
    RBRACKET = auto()
    LANGLE = auto()
    RANGLE = auto()
    SEMICOLON = auto()
    COMMA = auto()
    EQUALS = auto()

    # Literals
    IDENT = auto()
    NUMBER = auto()
    STRING_LIT = auto()

    # Special
    SYMBOL = auto()
    EOF = auto()


_KEYWORDS = {
    "syntax": ProtoTokenType.SYNTAX,
    "edition": ProtoTokenType.EDITION,
    "package": ProtoTokenType.PACKAGE,
    "import": ProtoTokenType.IMPORT,
    "option": ProtoTokenType.OPTION,
    "message": ProtoTokenType.MESSAGE,
    "enum": ProtoTokenType.ENUM,
    "service": ProtoTokenType.SERVICE,
    "rpc": ProtoTokenType.RPC,
    "returns": ProtoTokenType.RETURNS,
    "stream": ProtoTokenType.STREAM,
    "repeated": ProtoTokenType.REPEATED,
    "optional": ProtoTokenType.OPTIONAL,
    "required": ProtoTokenType.REQUIRED,
    "oneof": ProtoTokenType.ONEOF,
    "map": ProtoTokenType.MAP,
    "reserved": ProtoTokenType.RESERVED,
    "extensions": ProtoTokenType.EXTENSIONS,
    "extend": ProtoTokenType.EXTEND,
    "group": ProtoTokenType.GROUP,
}

# Keywords are only reserved by position; anywhere a name is expected they act as identifiers.
WORD_TOKENS = frozenset(_KEYWORDS.values()) | {ProtoTokenType.IDENT}

_SINGLE_CHAR_TOKENS = {
    "{": ProtoTokenType.LBRACE,
    "}": ProtoTokenType.RBRACE,
    "(": ProtoTokenType.LPAREN,
    ")": ProtoTokenType.RPAREN,
    "[": ProtoTokenType.LBRACKET,
    "]": ProtoTokenType.RBRACKET,
    "<": ProtoTokenType.LANGLE,
    ">": ProtoTokenType.RANGLE,
    ";": ProtoTokenType.SEMICOLON,
    ",": ProtoTokenType.COMMA,
    "=": ProtoTokenType.EQUALS,
}


@dataclass
class ProtoToken:
    type: ProtoTokenType
    value: str
    line: int
    col: int

    @property
    def is_word(self) -> bool:
        return self.type in WORD_TOKENS


class _Cursor:
    """Walks the source one character at a time, keeping line and column current."""

    def __init__(self, text: str):
        self.text = text
        self.pos = 0
        self.line = 1
        self.col = 1

    def at_end(self) -> bool:
        return self.pos >= len(self.text)

    def peek(self, offset: int = 0) -> str:
        index = self.pos + offset
        return self.text[index] if index < len(self.text) else ""

    def advance(self) -> str:
        ch = self.text[self.pos]
        self.pos += 1
        if ch == "\n":
            self.line += 1
            self.col = 1
        else:
            self.col += 1
        return ch

    def since(self, start: int) -> str:
        return self.text[start:self.pos]


def _is_ident_start(ch: str) -> bool:
    return ch.isalpha() or ch == "_"


def _is_number_start(cur: _Cursor) -> bool:
    ch, nxt = cur.peek(), cur.peek(1)
    if ch.isdigit():
        return True
    if ch in ("-", "+"):
        return nxt.isdigit() or nxt == "."
    return ch == "." and nxt.isdigit()


def _skip_comment(cur: _Cursor) -> bool:
    """Consume a // or /* */ comment at the cursor; False if there is none."""
    if cur.peek() != "/" or cur.peek(1) not in ("/", "*"):
        return False
    if cur.peek(1) == "/":
        while not cur.at_end() and cur.peek() != "\n":
            cur.advance()
        return True

    cur.advance()
    cur.advance()
    while not cur.at_end():
        if cur.peek() == "*" and cur.peek(1) == "/":
            cur.advance()
            cur.advance()
            break
        cur.advance()
    return True


def _read_string(cur: _Cursor) -> str:
    line, col = cur.line, cur.col
    quote = cur.advance()
    start = cur.pos
    while cur.peek() != quote:
        if cur.at_end() or cur.peek() == "\n":
            raise ProtoParseError("Unterminated string literal", line, col)
        if cur.advance() == "\\" and not cur.at_end():
            cur.advance()
    value = cur.since(start)
    cur.advance()
    return value


def _read_number(cur: _Cursor) -> str:
    start = cur.pos
    cur.advance()
    while not cur.at_end():
        c = cur.peek()
        so_far = cur.since(start)
        # 1e-3, but not the '-' after a hex digit 'e'
        exponent_sign = (
            c in ("+", "-")
            and so_far[-1] in "eE"
            and not so_far.lstrip("+-").lower().startswith("0x")
        )
        if not (c.isalnum() or c in ("_", ".") or exponent_sign):
            break
        cur.advance()
    return cur.since(start)


def _read_word(cur: _Cursor) -> str:
    start = cur.pos
    while not cur.at_end():
        c = cur.peek()
        if c.isalnum() or c == "_" or (c == "." and _is_ident_start(cur.peek(1))):
            cur.advance()
        else:
            break
    return cur.since(start)


def tokenize_proto(text: str) -> List[ProtoToken]:
    """Tokenize a protobuf source string into a list of tokens.

    Dotted names (``google.protobuf.Empty``, ``.pkg.Type``) come out as a
    single IDENT token. Signs directly in front of a number are part of it.
    """
    cur = _Cursor(text)
    tokens: List[ProtoToken] = []

    while not cur.at_end():
        ch = cur.peek()
        if ch.isspace():
            cur.advance()
            continue
        if _skip_comment(cur):
            continue

        line, col = cur.line, cur.col
        if ch in _SINGLE_CHAR_TOKENS:
            cur.advance()
            tokens.append(ProtoToken(_SINGLE_CHAR_TOKENS[ch], ch, line, col))
        elif ch in ('"', "'"):
            tokens.append(ProtoToken(ProtoTokenType.STRING_LIT, _read_string(cur), line, col))
        elif _is_number_start(cur):
            tokens.append(ProtoToken(ProtoTokenType.NUMBER, _read_number(cur), line, col))
        elif _is_ident_start(ch) or (ch == "." and _is_ident_start(cur.peek(1))):
            word = _read_word(cur)
            tokens.append(ProtoToken(_KEYWORDS.get(word, ProtoTokenType.IDENT), word, line, col))
        else:
            # ':' in aggregate options, stray punctuation
            cur.advance()
            tokens.append(ProtoToken(ProtoTokenType.SYMBOL, ch, line, col))

    tokens.append(ProtoToken(ProtoTokenType.EOF, "", cur.line, cur.col))
    return tokens
