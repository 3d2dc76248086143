"""AST node definitions for protobuf (.proto) files.

Containers keep their children in one ``elements`` list so that the walker
can replay declarations in source order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Union


@dataclass
class ProtoSyntax:
    """syntax = "proto3"; (or edition = "2023";)"""

    value: str


@dataclass
class ProtoPackage:
    name: str


@dataclass
class ProtoImport:
    """import [public|weak] "path";"""

    path: str
    kind: str = ""


@dataclass
class ProtoOption:
    """option name = constant; (aggregate values are kept as raw text)"""

    name: str
    value: str


@dataclass
class ProtoField:
    """A field declaration: [label] Type name = number [options];"""

    type_name: str
    field_name: str
    field_number: int
    is_repeated: bool = False
    label: str = ""


@dataclass
class ProtoMapField:
    """map<KeyType, ValueType> name = number;"""

    key_type: str
    value_type: str
    field_name: str
    field_number: int


@dataclass
class ProtoOneof:
    name: str
    fields: List[ProtoField] = field(default_factory=list)


@dataclass
class ProtoGroup:
    """proto2 group; the body is skipped."""

    name: str
    field_number: int
    label: str = ""


@dataclass
class ProtoReserved:
    text: str


@dataclass
class ProtoExtensions:
    text: str


@dataclass
class ProtoExtend:
    """extend Type { ... }; the body is skipped."""

    extendee: str


@dataclass
class ProtoEnum:
    name: str
    values: List[str] = field(default_factory=list)


MessageElement = Union[
    ProtoField, ProtoMapField, ProtoOneof, ProtoGroup, ProtoReserved,
    ProtoExtensions, ProtoExtend, ProtoEnum, ProtoOption, "ProtoMessage",
]


@dataclass
class ProtoMessage:
    """A message definition, possibly containing nested messages."""

    name: str
    elements: List[MessageElement] = field(default_factory=list)

    @property
    def fields(self) -> List[ProtoField]:
        return [e for e in self.elements if isinstance(e, ProtoField)]

    @property
    def nested_messages(self) -> List[ProtoMessage]:
        return [e for e in self.elements if isinstance(e, ProtoMessage)]


@dataclass
class ProtoRpc:
    """rpc Name ([stream] Request) returns ([stream] Response);"""

    name: str
    request_type: str
    response_type: str
    request_stream: bool = False
    response_stream: bool = False
    options: List[ProtoOption] = field(default_factory=list)


@dataclass
class ProtoService:
    name: str
    elements: List[Union[ProtoRpc, ProtoOption]] = field(default_factory=list)

    @property
    def rpcs(self) -> List[ProtoRpc]:
        return [e for e in self.elements if isinstance(e, ProtoRpc)]


FileElement = Union[
    ProtoSyntax, ProtoPackage, ProtoImport, ProtoOption,
    ProtoMessage, ProtoEnum, ProtoService, ProtoExtend,
]


@dataclass
class ProtoFile:
    """Top-level parsed representation of a .proto file."""

    elements: List[FileElement] = field(default_factory=list)

    @property
    def messages(self) -> List[ProtoMessage]:
        return [e for e in self.elements if isinstance(e, ProtoMessage)]

    @property
    def services(self) -> List[ProtoService]:
        return [e for e in self.elements if isinstance(e, ProtoService)]
