from __future__ import annotations

from pathlib import Path
from typing import List, Union

from protoc_scaffold.builder import build_services
from protoc_scaffold.errors import ProtoParseError, SourceReadError
from protoc_scaffold.models import ServiceDescriptor

from .proto_ast_parser import parse_proto_ast


def read_source(file_path: str) -> str:
    """Read a whole .proto file, turning OS failures into SourceReadError."""
    try:
        data = Path(file_path).read_bytes()
    except OSError as e:
        raise SourceReadError(file_path, e.strerror or str(e)) from e
    return _decode(data, file_path)


def _decode(data: bytes, source_file: str) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ProtoParseError(f"{source_file or '<memory>'} is not valid UTF-8: {e}") from e


def parse_services(source: Union[str, bytes], source_file: str = "") -> List[ServiceDescriptor]:
    """Parse proto source text and return one descriptor per declared service."""
    text = _decode(source, source_file) if isinstance(source, bytes) else source
    return build_services(parse_proto_ast(text), source_file)


def parse_proto_text(source: Union[str, bytes], source_file: str = "") -> ServiceDescriptor:
    """Parse proto source text and return the first service it declares."""
    return parse_services(source, source_file)[0]


def parse_proto_file_services(file_path: str) -> List[ServiceDescriptor]:
    return parse_services(read_source(file_path), source_file=file_path)


def parse_proto_file(file_path: str) -> ServiceDescriptor:
    """Parse a .proto file and return the service it declares."""
    return parse_proto_file_services(file_path)[0]
