from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

# Scalar keywords (and their repeated forms) that templates can emit directly.
BASIC_TYPES = {
    "bool", "int32", "int64", "uint32", "uint64",
    "float32", "float64", "float", "double",
    "string", "bytes",
}

REPEATED_PREFIX = "[]"


def is_basic_type(type_name: str) -> bool:
    if type_name.startswith(REPEATED_PREFIX):
        type_name = type_name[len(REPEATED_PREFIX):]
    return type_name in BASIC_TYPES


class StreamingMode(str, Enum):
    UNARY = "unary"
    CLIENT_STREAMING = "client_streaming"
    SERVER_STREAMING = "server_streaming"
    BIDIRECTIONAL = "bidirectional"

    @classmethod
    def from_flags(cls, request_streams: bool, response_streams: bool) -> StreamingMode:
        if request_streams and response_streams:
            return cls.BIDIRECTIONAL
        if request_streams:
            return cls.CLIENT_STREAMING
        if response_streams:
            return cls.SERVER_STREAMING
        return cls.UNARY


@dataclass
class FieldDescriptor:
    name: str
    type: str
    number: int

    @property
    def is_basic_type(self) -> bool:
        return is_basic_type(self.type)

    @property
    def is_repeated(self) -> bool:
        return self.type.startswith(REPEATED_PREFIX)

    @property
    def type_name(self) -> str:
        """Custom (message or enum) type referenced by the field, or ''."""
        if self.is_basic_type:
            return ""
        if self.is_repeated:
            return self.type[len(REPEATED_PREFIX):]
        return self.type


@dataclass
class MessageDescriptor:
    name: str
    fields: List[FieldDescriptor] = field(default_factory=list)

    def field_by_name(self, name: str) -> Optional[FieldDescriptor]:
        for f in self.fields:
            if f.name == name:
                return f
        return None


@dataclass
class MethodDescriptor:
    name: str
    request_type_full: str
    response_type_full: str
    request_type_short: str
    response_type_short: str
    streaming_mode: StreamingMode = StreamingMode.UNARY

    @property
    def request_streams(self) -> bool:
        return self.streaming_mode in (StreamingMode.CLIENT_STREAMING, StreamingMode.BIDIRECTIONAL)

    @property
    def response_streams(self) -> bool:
        return self.streaming_mode in (StreamingMode.SERVER_STREAMING, StreamingMode.BIDIRECTIONAL)


@dataclass
class ServiceDescriptor:
    """Everything the renderers need to know about one service of a schema."""

    name: str
    proto_package: str = ""
    go_package: str = ""
    methods: List[MethodDescriptor] = field(default_factory=list)
    messages: List[MessageDescriptor] = field(default_factory=list)
    import_paths: List[str] = field(default_factory=list)
    source_file: str = ""

    def find_message(self, name: str) -> Optional[MessageDescriptor]:
        for msg in self.messages:
            if msg.name == name:
                return msg
        return None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "proto_package": self.proto_package,
            "go_package": self.go_package,
            "import_paths": list(self.import_paths),
            "source_file": self.source_file,
            "methods": [
                {
                    "name": m.name,
                    "request_type_full": m.request_type_full,
                    "response_type_full": m.response_type_full,
                    "request_type_short": m.request_type_short,
                    "response_type_short": m.response_type_short,
                    "streaming_mode": m.streaming_mode.value,
                }
                for m in self.methods
            ],
            "messages": [
                {
                    "name": msg.name,
                    "fields": [
                        {
                            "name": f.name,
                            "type": f.type,
                            "number": f.number,
                            "is_basic_type": f.is_basic_type,
                        }
                        for f in msg.fields
                    ],
                }
                for msg in self.messages
            ],
        }
