"""Build the intermediate model from compiled descriptors instead of source text.

A FileDescriptorProto is converted into the same AST the text parser
produces, so both paths share the walker and the model builder.
"""

from __future__ import annotations

import os
import subprocess
import tempfile
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from google.protobuf import descriptor_pb2 as d2
from google.protobuf.message import DecodeError

from protoc_scaffold.builder import build_services
from protoc_scaffold.errors import ProtocError, ProtoParseError, SourceReadError
from protoc_scaffold.models import ServiceDescriptor
from protoc_scaffold.naming import clean_type_name

from .proto_ast import (
    ProtoEnum,
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

_FDP = d2.FieldDescriptorProto

# Declared field type code -> proto keyword
WIRE_TYPE_NAMES: Dict[int, str] = {
    _FDP.TYPE_DOUBLE: "double",
    _FDP.TYPE_FLOAT: "float",
    _FDP.TYPE_INT64: "int64",
    _FDP.TYPE_UINT64: "uint64",
    _FDP.TYPE_INT32: "int32",
    _FDP.TYPE_FIXED64: "fixed64",
    _FDP.TYPE_FIXED32: "fixed32",
    _FDP.TYPE_BOOL: "bool",
    _FDP.TYPE_STRING: "string",
    _FDP.TYPE_GROUP: "group",
    _FDP.TYPE_MESSAGE: "message",
    _FDP.TYPE_BYTES: "bytes",
    _FDP.TYPE_UINT32: "uint32",
    _FDP.TYPE_ENUM: "enum",
    _FDP.TYPE_SFIXED32: "sfixed32",
    _FDP.TYPE_SFIXED64: "sfixed64",
    _FDP.TYPE_SINT32: "sint32",
    _FDP.TYPE_SINT64: "sint64",
}

_LABEL_NAMES = {
    _FDP.LABEL_REPEATED: "repeated",
    _FDP.LABEL_REQUIRED: "required",
}


def wire_type_name(type_code: int) -> str:
    return WIRE_TYPE_NAMES.get(type_code, "unknown")


def _field_type_name(fd: d2.FieldDescriptorProto) -> str:
    # Message and enum fields carry their own name; everything else uses the keyword table.
    if fd.type in (_FDP.TYPE_MESSAGE, _FDP.TYPE_ENUM) and fd.type_name:
        return fd.type_name
    return wire_type_name(fd.type)


def _to_proto_field(fd: d2.FieldDescriptorProto) -> ProtoField:
    label = "optional" if fd.proto3_optional else _LABEL_NAMES.get(fd.label, "")
    return ProtoField(
        type_name=_field_type_name(fd),
        field_name=fd.name,
        field_number=fd.number,
        is_repeated=fd.label == _FDP.LABEL_REPEATED,
        label=label,
    )


def _message_to_ast(desc: d2.DescriptorProto) -> ProtoMessage:
    map_entries = {n.name: n for n in desc.nested_type if n.options.map_entry}
    group_bodies = {
        clean_type_name(f.type_name) for f in desc.field if f.type == _FDP.TYPE_GROUP
    }
    message = ProtoMessage(name=desc.name)
    oneofs: Dict[int, ProtoOneof] = {}

    for fd in desc.field:
        entry = map_entries.get(clean_type_name(fd.type_name)) if fd.type == _FDP.TYPE_MESSAGE else None
        if entry is not None and fd.label == _FDP.LABEL_REPEATED:
            key, value = entry.field[0], entry.field[1]
            message.elements.append(
                ProtoMapField(
                    key_type=_field_type_name(key),
                    value_type=_field_type_name(value),
                    field_name=fd.name,
                    field_number=fd.number,
                )
            )
        elif fd.HasField("oneof_index") and not fd.proto3_optional:
            oneof = oneofs.get(fd.oneof_index)
            if oneof is None:
                oneof = ProtoOneof(name=desc.oneof_decl[fd.oneof_index].name)
                oneofs[fd.oneof_index] = oneof
                message.elements.append(oneof)
            oneof.fields.append(_to_proto_field(fd))
        elif fd.type == _FDP.TYPE_GROUP:
            message.elements.append(
                ProtoGroup(
                    name=clean_type_name(fd.type_name),
                    field_number=fd.number,
                    label=_LABEL_NAMES.get(fd.label, ""),
                )
            )
        else:
            message.elements.append(_to_proto_field(fd))

    for nested in desc.nested_type:
        if nested.name in map_entries or nested.name in group_bodies:
            continue
        message.elements.append(_message_to_ast(nested))
    for enum in desc.enum_type:
        message.elements.append(ProtoEnum(name=enum.name, values=[v.name for v in enum.value]))
    for rng in desc.reserved_range:
        # Descriptor ranges are end-exclusive.
        message.elements.append(ProtoReserved(text=f"{rng.start} to {rng.end - 1}"))
    for name in desc.reserved_name:
        message.elements.append(ProtoReserved(text=f'"{name}"'))
    for rng in desc.extension_range:
        message.elements.append(ProtoExtensions(text=f"{rng.start} to {rng.end - 1}"))

    return message


def file_descriptor_to_ast(fd: d2.FileDescriptorProto) -> ProtoFile:
    """Convert a FileDescriptorProto into the text parser's AST shape."""
    proto = ProtoFile()
    proto.elements.append(ProtoSyntax(value=fd.syntax or "proto2"))
    if fd.package:
        proto.elements.append(ProtoPackage(name=fd.package))
    public = set(fd.public_dependency)
    weak = set(fd.weak_dependency)
    for index, dep in enumerate(fd.dependency):
        kind = "public" if index in public else "weak" if index in weak else ""
        proto.elements.append(ProtoImport(path=dep, kind=kind))
    if fd.options.HasField("go_package"):
        proto.elements.append(ProtoOption(name="go_package", value=fd.options.go_package))

    for msg in fd.message_type:
        proto.elements.append(_message_to_ast(msg))
    for enum in fd.enum_type:
        proto.elements.append(ProtoEnum(name=enum.name, values=[v.name for v in enum.value]))
    for svc in fd.service:
        proto.elements.append(
            ProtoService(
                name=svc.name,
                elements=[
                    ProtoRpc(
                        name=method.name,
                        request_type=method.input_type,
                        response_type=method.output_type,
                        request_stream=method.client_streaming,
                        response_stream=method.server_streaming,
                    )
                    for method in svc.method
                ],
            )
        )
    return proto


def parse_file_descriptor(fd: d2.FileDescriptorProto, source_file: str = "") -> List[ServiceDescriptor]:
    return build_services(file_descriptor_to_ast(fd), source_file or fd.name)


def parse_serialized_file_descriptor(data: bytes, source_file: str = "") -> List[ServiceDescriptor]:
    """Model a single serialized FileDescriptorProto."""
    fd = d2.FileDescriptorProto()
    try:
        fd.ParseFromString(data)
    except DecodeError as e:
        raise ProtoParseError(f"{source_file or '<memory>'}: invalid file descriptor: {e}") from e
    return parse_file_descriptor(fd, source_file)


def load_descriptor_set(data: bytes, source_file: str = "") -> d2.FileDescriptorSet:
    fds = d2.FileDescriptorSet()
    try:
        fds.ParseFromString(data)
    except DecodeError as e:
        raise ProtoParseError(f"{source_file or '<memory>'}: invalid descriptor set: {e}") from e
    return fds


def select_file(fds: d2.FileDescriptorSet, target: Optional[str] = None) -> d2.FileDescriptorProto:
    """Pick the file to model out of a descriptor set.

    With a target, an exact name match wins; otherwise the last file whose
    path ends in the target's base name is used. Without one, take the last file
    declaring a service (protoc lists dependencies before the files asked for).
    """
    if not fds.file:
        raise ProtoParseError("Descriptor set contains no files")
    if target:
        for f in fds.file:
            if f.name == target:
                return f
        base = os.path.basename(target)
        # dependencies come first, so the requested file is the last match
        matches = [f for f in fds.file if f.name == base or f.name.endswith("/" + base)]
        if matches:
            return matches[-1]
        names = ", ".join(f.name for f in fds.file)
        raise ProtoParseError(f"Could not locate target file '{target}' in descriptor set. Found: {names}")
    with_services = [f for f in fds.file if f.service]
    return with_services[-1] if with_services else fds.file[-1]


def parse_descriptor_set(
    data: bytes,
    target: Optional[str] = None,
    source_file: str = "",
) -> List[ServiceDescriptor]:
    fd = select_file(load_descriptor_set(data, source_file), target)
    return parse_file_descriptor(fd, source_file or fd.name)


def parse_descriptor_set_file(file_path: str, target: Optional[str] = None) -> List[ServiceDescriptor]:
    """Model a binary FileDescriptorSet written by protoc --descriptor_set_out."""
    try:
        data = Path(file_path).read_bytes()
    except OSError as e:
        raise SourceReadError(file_path, e.strerror or str(e)) from e
    return parse_descriptor_set(data, target, source_file=file_path)


def compile_descriptor_set(proto_path: str, include_dirs: Sequence[str] = ()) -> bytes:
    """Run protoc once and hand back the serialized FileDescriptorSet."""
    if not os.path.isfile(proto_path):
        raise SourceReadError(proto_path, "No such file")

    # include the directory of the file first, then the caller's paths
    includes = [os.path.dirname(os.path.abspath(proto_path))]
    includes.extend(os.path.abspath(inc) for inc in include_dirs)

    seen = set()
    inc_args: List[str] = []
    for inc in includes:
        if inc and inc not in seen:
            seen.add(inc)
            inc_args.extend(["-I", inc])

    with tempfile.TemporaryDirectory() as td:
        desc_path = os.path.join(td, "descriptor_set.pb")
        cmd = ["protoc", "--include_imports", f"--descriptor_set_out={desc_path}"] + inc_args + [
            os.path.abspath(proto_path)
        ]
        try:
            subprocess.run(cmd, check=True, capture_output=True)
        except FileNotFoundError as e:
            raise ProtocError("'protoc' not found. Please install Protocol Buffers compiler and ensure it is in PATH.") from e
        except subprocess.CalledProcessError as e:
            raise ProtoParseError(e.stderr.decode("utf-8", errors="ignore").strip()) from e

        with open(desc_path, "rb") as f:
            return f.read()


def parse_proto_via_protoc(proto_path: str, include_dirs: Sequence[str] = ()) -> List[ServiceDescriptor]:
    """Compile a .proto with protoc and model it from the resulting descriptors."""
    data = compile_descriptor_set(proto_path, include_dirs)
    return parse_descriptor_set(data, target=os.path.basename(proto_path), source_file=proto_path)
