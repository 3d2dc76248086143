"""Recursive descent parser for protobuf (.proto) files.

Consumes a token stream from proto_tokenizer and produces proto AST nodes.
Declarations the scaffolder does not model (enums, oneofs, maps, groups,
reserved ranges, extensions) are still parsed so that malformed input is
reported, but their bodies are kept only as far as the walker needs them.
"""

from __future__ import annotations

from typing import List, Tuple

from protoc_scaffold.errors import ProtoParseError

from .proto_ast import (
    MessageElement,
    ProtoEnum,
    ProtoExtend,
    ProtoExtensions,
    ProtoField,
    ProtoFile,
    ProtoGroup,
    ProtoImport,
    ProtoMapField,
    ProtoMessage,
    ProtoOneof,
    ProtoOption,
    ProtoPackage,
    ProtoReserved,
    ProtoRpc,
    ProtoService,
    ProtoSyntax,
)
from .proto_tokenizer import ProtoToken, ProtoTokenType, tokenize_proto

_LABELS = (ProtoTokenType.REPEATED, ProtoTokenType.OPTIONAL, ProtoTokenType.REQUIRED)


def parse_proto_ast(text: str) -> ProtoFile:
    """Tokenize and parse proto source text."""
    return ProtoParser(tokenize_proto(text)).parse()


def _error(message: str, token: ProtoToken) -> ProtoParseError:
    return ProtoParseError(message, token.line, token.col)


class ProtoParser:
    """Recursive descent parser for .proto files."""

    def __init__(self, tokens: List[ProtoToken]):
        self._tokens = tokens
        self._pos = 0

    # -- public API --

    def parse(self) -> ProtoFile:
        """Parse the full token stream into a ProtoFile AST."""
        proto = ProtoFile()

        while not self._at_end():
            tok = self._peek()
            tt = tok.type

            if tt in (ProtoTokenType.SYNTAX, ProtoTokenType.EDITION):
                proto.elements.append(self._parse_syntax())
            elif tt == ProtoTokenType.PACKAGE:
                proto.elements.append(self._parse_package())
            elif tt == ProtoTokenType.IMPORT:
                proto.elements.append(self._parse_import())
            elif tt == ProtoTokenType.OPTION:
                proto.elements.append(self._parse_option())
            elif tt == ProtoTokenType.MESSAGE:
                proto.elements.append(self._parse_message())
            elif tt == ProtoTokenType.ENUM:
                proto.elements.append(self._parse_enum())
            elif tt == ProtoTokenType.SERVICE:
                proto.elements.append(self._parse_service())
            elif tt == ProtoTokenType.EXTEND:
                proto.elements.append(self._parse_extend())
            elif tt == ProtoTokenType.SEMICOLON:
                self._advance()
            else:
                raise _error(f"Unexpected {tt.name} ({tok.value!r}) at top level", tok)

        return proto

    # -- file-level statements --

    def _parse_syntax(self) -> ProtoSyntax:
        """Parse: (SYNTAX | EDITION) EQUALS STRING_LIT SEMICOLON"""
        self._advance()
        self._expect(ProtoTokenType.EQUALS)
        value = self._parse_string()
        self._expect(ProtoTokenType.SEMICOLON)
        return ProtoSyntax(value=value)

    def _parse_package(self) -> ProtoPackage:
        self._expect(ProtoTokenType.PACKAGE)
        name = self._expect_word().value
        self._expect(ProtoTokenType.SEMICOLON)
        return ProtoPackage(name=name)

    def _parse_import(self) -> ProtoImport:
        """Parse: IMPORT [public | weak] STRING_LIT SEMICOLON"""
        self._expect(ProtoTokenType.IMPORT)
        kind = ""
        if self._peek().type == ProtoTokenType.IDENT and self._peek().value in ("public", "weak"):
            kind = self._advance().value
        path = self._parse_string()
        self._expect(ProtoTokenType.SEMICOLON)
        return ProtoImport(path=path, kind=kind)

    def _parse_option(self) -> ProtoOption:
        """Parse: OPTION name EQUALS constant SEMICOLON"""
        self._expect(ProtoTokenType.OPTION)
        name = self._parse_option_name()
        self._expect(ProtoTokenType.EQUALS)
        value = self._parse_constant()
        self._expect(ProtoTokenType.SEMICOLON)
        return ProtoOption(name=name, value=value)

    def _parse_option_name(self) -> str:
        """Parse a plain (go_package) or extension ((my.ext).field) option name."""
        tok = self._peek()
        if tok.type == ProtoTokenType.LPAREN:
            self._advance()
            inner = self._expect_word().value
            self._expect(ProtoTokenType.RPAREN)
            name = f"({inner})"
        elif tok.is_word:
            name = self._advance().value
        else:
            raise _error(f"Expected option name, got {tok.type.name} ({tok.value!r})", tok)

        # Trailing sub-field selectors come through as ".field" identifiers.
        while self._peek().type == ProtoTokenType.IDENT and self._peek().value.startswith("."):
            name += self._advance().value
        return name

    def _parse_constant(self) -> str:
        tok = self._peek()
        if tok.type == ProtoTokenType.STRING_LIT:
            return self._parse_string()
        if tok.type == ProtoTokenType.LBRACE:
            return self._skip_balanced(ProtoTokenType.LBRACE, ProtoTokenType.RBRACE)
        if tok.type == ProtoTokenType.NUMBER or tok.is_word:
            return self._advance().value
        if tok.type == ProtoTokenType.SYMBOL and tok.value in ("-", "+") and self._peek(1).is_word:
            # -inf, +nan
            self._advance()
            return tok.value + self._advance().value
        raise _error(f"Expected constant, got {tok.type.name} ({tok.value!r})", tok)

    def _parse_string(self) -> str:
        """Parse one or more adjacent string literals ("a" "b" == "ab")."""
        value = self._expect(ProtoTokenType.STRING_LIT).value
        while self._peek().type == ProtoTokenType.STRING_LIT:
            value += self._advance().value
        return value

    # -- message parsing --

    def _parse_message(self) -> ProtoMessage:
        """Parse: MESSAGE IDENT LBRACE body RBRACE"""
        self._expect(ProtoTokenType.MESSAGE)
        name_tok = self._expect_word()
        self._expect(ProtoTokenType.LBRACE)
        elements = self._parse_message_body()
        self._expect(ProtoTokenType.RBRACE)
        return ProtoMessage(name=name_tok.value, elements=elements)

    def _parse_message_body(self) -> List[MessageElement]:
        """Parse the contents between { and } of a message."""
        elements: List[MessageElement] = []

        while not self._at_end() and self._peek().type != ProtoTokenType.RBRACE:
            tok = self._peek()
            tt = tok.type

            if tt == ProtoTokenType.SEMICOLON:
                self._advance()
            elif self._starts_block(ProtoTokenType.MESSAGE):
                elements.append(self._parse_message())
            elif self._starts_block(ProtoTokenType.ENUM):
                elements.append(self._parse_enum())
            elif self._starts_block(ProtoTokenType.ONEOF):
                elements.append(self._parse_oneof())
            elif self._starts_block(ProtoTokenType.EXTEND):
                elements.append(self._parse_extend())
            elif tt == ProtoTokenType.OPTION:
                elements.append(self._parse_option())
            elif tt == ProtoTokenType.RESERVED and self._peek(2).type != ProtoTokenType.EQUALS:
                self._advance()
                elements.append(ProtoReserved(text=self._collect_statement()))
            elif tt == ProtoTokenType.EXTENSIONS and self._peek(1).type == ProtoTokenType.NUMBER:
                self._advance()
                elements.append(ProtoExtensions(text=self._collect_statement()))
            elif tt == ProtoTokenType.MAP and self._peek(1).type == ProtoTokenType.LANGLE:
                elements.append(self._parse_map_field())
            elif self._starts_group():
                elements.append(self._parse_group())
            elif tok.is_word:
                elements.append(self._parse_field())
            else:
                raise _error(f"Unexpected {tt.name} ({tok.value!r}) in message body", tok)

        return elements

    def _parse_field(self) -> ProtoField:
        """Parse: [label] IDENT(type) IDENT(name) EQUALS NUMBER [options] SEMICOLON"""
        label = ""
        if self._peek().type in _LABELS and self._peek(1).is_word and self._peek(2).is_word:
            label = self._advance().value

        type_tok = self._expect_word()
        name_tok = self._expect_word()
        self._expect(ProtoTokenType.EQUALS)
        number = self._parse_field_number()
        self._skip_field_options()
        self._expect(ProtoTokenType.SEMICOLON)

        return ProtoField(
            type_name=type_tok.value,
            field_name=name_tok.value,
            field_number=number,
            is_repeated=label == "repeated",
            label=label,
        )

    def _parse_map_field(self) -> ProtoMapField:
        """Parse: MAP LANGLE key COMMA value RANGLE name EQUALS NUMBER [options] SEMICOLON"""
        self._expect(ProtoTokenType.MAP)
        self._expect(ProtoTokenType.LANGLE)
        key_type = self._expect_word().value
        self._expect(ProtoTokenType.COMMA)
        value_type = self._expect_word().value
        self._expect(ProtoTokenType.RANGLE)
        name_tok = self._expect_word()
        self._expect(ProtoTokenType.EQUALS)
        number = self._parse_field_number()
        self._skip_field_options()
        self._expect(ProtoTokenType.SEMICOLON)
        return ProtoMapField(
            key_type=key_type,
            value_type=value_type,
            field_name=name_tok.value,
            field_number=number,
        )

    def _parse_oneof(self) -> ProtoOneof:
        self._expect(ProtoTokenType.ONEOF)
        oneof = ProtoOneof(name=self._expect_word().value)
        self._expect(ProtoTokenType.LBRACE)

        while not self._at_end() and self._peek().type != ProtoTokenType.RBRACE:
            tok = self._peek()
            if tok.type == ProtoTokenType.SEMICOLON:
                self._advance()
            elif tok.type == ProtoTokenType.OPTION:
                self._parse_option()
            elif self._starts_group():
                self._parse_group()
            elif tok.is_word:
                oneof.fields.append(self._parse_field())
            else:
                raise _error(f"Unexpected {tok.type.name} ({tok.value!r}) in oneof body", tok)

        self._expect(ProtoTokenType.RBRACE)
        return oneof

    def _starts_group(self) -> bool:
        offset = 1 if self._peek().type in _LABELS else 0
        return (
            self._peek(offset).type == ProtoTokenType.GROUP
            and self._peek(offset + 1).is_word
            and self._peek(offset + 2).type == ProtoTokenType.EQUALS
        )

    def _parse_group(self) -> ProtoGroup:
        """Parse: [label] GROUP IDENT EQUALS NUMBER [options] LBRACE ... RBRACE"""
        label = self._advance().value if self._peek().type in _LABELS else ""
        self._expect(ProtoTokenType.GROUP)
        name = self._expect_word().value
        self._expect(ProtoTokenType.EQUALS)
        number = self._parse_field_number()
        self._skip_field_options()
        self._skip_balanced(ProtoTokenType.LBRACE, ProtoTokenType.RBRACE)
        return ProtoGroup(name=name, field_number=number, label=label)

    def _parse_enum(self) -> ProtoEnum:
        """Parse: ENUM IDENT LBRACE { value | option | reserved } RBRACE"""
        self._expect(ProtoTokenType.ENUM)
        enum = ProtoEnum(name=self._expect_word().value)
        self._expect(ProtoTokenType.LBRACE)

        while not self._at_end() and self._peek().type != ProtoTokenType.RBRACE:
            tok = self._peek()
            if tok.type == ProtoTokenType.SEMICOLON:
                self._advance()
            elif tok.type == ProtoTokenType.OPTION:
                self._parse_option()
            elif tok.type == ProtoTokenType.RESERVED and self._peek(1).type != ProtoTokenType.EQUALS:
                self._advance()
                self._collect_statement()
            elif tok.is_word:
                enum.values.append(self._advance().value)
                self._expect(ProtoTokenType.EQUALS)
                self._expect(ProtoTokenType.NUMBER)
                self._skip_field_options()
                self._expect(ProtoTokenType.SEMICOLON)
            else:
                raise _error(f"Unexpected {tok.type.name} ({tok.value!r}) in enum body", tok)

        self._expect(ProtoTokenType.RBRACE)
        return enum

    def _parse_extend(self) -> ProtoExtend:
        self._expect(ProtoTokenType.EXTEND)
        extendee = self._expect_word().value
        self._skip_balanced(ProtoTokenType.LBRACE, ProtoTokenType.RBRACE)
        return ProtoExtend(extendee=extendee)

    # -- service parsing --

    def _parse_service(self) -> ProtoService:
        """Parse: SERVICE IDENT LBRACE { rpc | option } RBRACE"""
        self._expect(ProtoTokenType.SERVICE)
        service = ProtoService(name=self._expect_word().value)
        self._expect(ProtoTokenType.LBRACE)

        while not self._at_end() and self._peek().type != ProtoTokenType.RBRACE:
            tok = self._peek()
            if tok.type == ProtoTokenType.SEMICOLON:
                self._advance()
            elif tok.type == ProtoTokenType.OPTION:
                service.elements.append(self._parse_option())
            elif tok.type == ProtoTokenType.RPC:
                service.elements.append(self._parse_rpc())
            else:
                raise _error(f"Unexpected {tok.type.name} ({tok.value!r}) in service body", tok)

        self._expect(ProtoTokenType.RBRACE)
        return service

    def _parse_rpc(self) -> ProtoRpc:
        """Parse: RPC IDENT ( [stream] Type ) RETURNS ( [stream] Type ) ( ; | { options } )"""
        self._expect(ProtoTokenType.RPC)
        name = self._expect_word().value
        request_stream, request_type = self._parse_rpc_type()
        self._expect(ProtoTokenType.RETURNS)
        response_stream, response_type = self._parse_rpc_type()

        rpc = ProtoRpc(
            name=name,
            request_type=request_type,
            response_type=response_type,
            request_stream=request_stream,
            response_stream=response_stream,
        )

        tok = self._peek()
        if tok.type == ProtoTokenType.SEMICOLON:
            self._advance()
        elif tok.type == ProtoTokenType.LBRACE:
            self._advance()
            while not self._at_end() and self._peek().type != ProtoTokenType.RBRACE:
                inner = self._peek()
                if inner.type == ProtoTokenType.OPTION:
                    rpc.options.append(self._parse_option())
                elif inner.type == ProtoTokenType.SEMICOLON:
                    self._advance()
                else:
                    raise _error(f"Unexpected {inner.type.name} ({inner.value!r}) in rpc body", inner)
            self._expect(ProtoTokenType.RBRACE)
        else:
            raise _error(f"Expected ';' or '{{' after rpc {name}, got {tok.type.name} ({tok.value!r})", tok)

        return rpc

    def _parse_rpc_type(self) -> Tuple[bool, str]:
        """Parse: LPAREN [STREAM] IDENT RPAREN -> (is_stream, type_name)"""
        self._expect(ProtoTokenType.LPAREN)
        is_stream = False
        if self._peek().type == ProtoTokenType.STREAM and self._peek(1).is_word:
            self._advance()
            is_stream = True
        type_name = self._expect_word().value
        self._expect(ProtoTokenType.RPAREN)
        return is_stream, type_name

    # -- skip helpers --

    def _parse_field_number(self) -> int:
        tok = self._expect(ProtoTokenType.NUMBER)
        text = tok.value.lower()
        try:
            if text.startswith("0x"):
                number = int(text, 16)
            elif len(text) > 1 and text.startswith("0"):
                number = int(text, 8)
            else:
                number = int(text)
        except ValueError:
            raise _error(f"Invalid field number {tok.value!r}", tok) from None
        if number <= 0:
            raise _error(f"Field number must be a positive integer, got {tok.value}", tok)
        return number

    def _skip_field_options(self) -> None:
        """Skip a bracketed option list: [default = 1, deprecated = true]"""
        if self._peek().type == ProtoTokenType.LBRACKET:
            self._skip_balanced(ProtoTokenType.LBRACKET, ProtoTokenType.RBRACKET)

    def _collect_statement(self) -> str:
        """Consume tokens up to and including the next semicolon; return their text."""
        parts: List[str] = []
        while not self._at_end():
            tok = self._advance()
            if tok.type == ProtoTokenType.SEMICOLON:
                return " ".join(parts)
            parts.append(tok.value)
        raise _error("Unexpected end of input, expected ';'", self._peek())

    def _skip_balanced(self, open_type: ProtoTokenType, close_type: ProtoTokenType) -> str:
        """Consume a bracketed region including nested pairs; return its raw text."""
        open_tok = self._expect(open_type)
        parts = [open_tok.value]
        depth = 1
        while depth > 0:
            if self._at_end():
                raise _error(f"Unclosed {open_tok.value!r}", open_tok)
            tok = self._advance()
            if tok.type == open_type:
                depth += 1
            elif tok.type == close_type:
                depth -= 1
            parts.append(tok.value)
        return " ".join(parts)

    def _starts_block(self, keyword: ProtoTokenType) -> bool:
        """True for `keyword Name {`, so keywords used as field types still parse as fields."""
        return (
            self._peek().type == keyword
            and self._peek(1).is_word
            and self._peek(2).type == ProtoTokenType.LBRACE
        )

    # -- token helpers --

    def _peek(self, offset: int = 0) -> ProtoToken:
        return self._tokens[min(self._pos + offset, len(self._tokens) - 1)]

    def _advance(self) -> ProtoToken:
        tok = self._tokens[self._pos]
        if tok.type != ProtoTokenType.EOF:
            self._pos += 1
        return tok

    def _expect(self, expected: ProtoTokenType) -> ProtoToken:
        tok = self._peek()
        if tok.type != expected:
            raise _error(
                f"Expected {expected.name}, got {tok.type.name} ({tok.value!r})",
                tok,
            )
        return self._advance()

    def _expect_word(self) -> ProtoToken:
        """Expect an identifier; keywords are accepted as names."""
        tok = self._peek()
        if not tok.is_word:
            raise _error(f"Expected IDENT, got {tok.type.name} ({tok.value!r})", tok)
        return self._advance()

    def _at_end(self) -> bool:
        return self._tokens[self._pos].type == ProtoTokenType.EOF
