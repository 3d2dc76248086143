"""Source-order traversal of a proto AST with typed visitor callbacks."""

from __future__ import annotations

from .proto_ast import (
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


class ProtoVisitor:
    """Base visitor; every callback is a no-op so subclasses pick what they need."""

    def visit_syntax(self, node: ProtoSyntax) -> None:
        pass

    def visit_package(self, node: ProtoPackage) -> None:
        pass

    def visit_import(self, node: ProtoImport) -> None:
        pass

    def visit_option(self, node: ProtoOption) -> None:
        pass

    def visit_message(self, node: ProtoMessage) -> None:
        pass

    def visit_field(self, node: ProtoField) -> None:
        pass

    def visit_map_field(self, node: ProtoMapField) -> None:
        pass

    def visit_oneof(self, node: ProtoOneof) -> None:
        pass

    def visit_oneof_field(self, node: ProtoField) -> None:
        pass

    def visit_group(self, node: ProtoGroup) -> None:
        pass

    def visit_enum(self, node: ProtoEnum) -> None:
        pass

    def visit_reserved(self, node: ProtoReserved) -> None:
        pass

    def visit_extensions(self, node: ProtoExtensions) -> None:
        pass

    def visit_extend(self, node: ProtoExtend) -> None:
        pass

    def visit_service(self, node: ProtoService) -> None:
        pass

    def visit_rpc(self, node: ProtoRpc) -> None:
        pass


# Leaf declarations that map one-to-one onto a callback.
_LEAF_CALLBACKS = {
    ProtoSyntax: "visit_syntax",
    ProtoPackage: "visit_package",
    ProtoImport: "visit_import",
    ProtoField: "visit_field",
    ProtoMapField: "visit_map_field",
    ProtoGroup: "visit_group",
    ProtoEnum: "visit_enum",
    ProtoReserved: "visit_reserved",
    ProtoExtensions: "visit_extensions",
    ProtoExtend: "visit_extend",
}


def walk(proto: ProtoFile, visitor: ProtoVisitor) -> None:
    """Visit every declaration of ``proto`` exactly once.

    Only file-level options reach ``visit_option``. Within a message, its own
    fields are visited before any nested message, so a visitor tracking "the
    message being filled" never sees a parent's field after a child opened.
    """
    for element in proto.elements:
        if isinstance(element, ProtoMessage):
            _walk_message(element, visitor)
        elif isinstance(element, ProtoService):
            _walk_service(element, visitor)
        elif isinstance(element, ProtoOption):
            visitor.visit_option(element)
        else:
            getattr(visitor, _LEAF_CALLBACKS[type(element)])(element)


def _walk_message(message: ProtoMessage, visitor: ProtoVisitor) -> None:
    visitor.visit_message(message)

    nested = []
    for element in message.elements:
        if isinstance(element, ProtoMessage):
            nested.append(element)
        elif isinstance(element, ProtoOneof):
            visitor.visit_oneof(element)
            for f in element.fields:
                visitor.visit_oneof_field(f)
        elif isinstance(element, ProtoOption):
            continue
        else:
            getattr(visitor, _LEAF_CALLBACKS[type(element)])(element)

    for child in nested:
        _walk_message(child, visitor)


def _walk_service(service: ProtoService, visitor: ProtoVisitor) -> None:
    visitor.visit_service(service)
    for rpc in service.rpcs:
        visitor.visit_rpc(rpc)
