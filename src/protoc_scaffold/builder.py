"""Fold the walker's declaration stream into ServiceDescriptor models."""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Tuple

from protoc_scaffold.errors import EmptyModelError
from protoc_scaffold.models import (
    REPEATED_PREFIX,
    FieldDescriptor,
    MessageDescriptor,
    MethodDescriptor,
    ServiceDescriptor,
    StreamingMode,
)
from protoc_scaffold.naming import (
    REPLY_SUFFIX,
    REQUEST_SUFFIX,
    clean_type_name,
    service_or_method_name,
    strip_reply_suffix,
    strip_request_suffix,
)
from protoc_scaffold.parser.proto_ast import (
    ProtoField,
    ProtoFile,
    ProtoImport,
    ProtoMessage,
    ProtoOption,
    ProtoPackage,
    ProtoRpc,
    ProtoService,
)
from protoc_scaffold.parser.proto_walker import ProtoVisitor, walk

logger = logging.getLogger(__name__)

GO_PACKAGE_OPTION = "go_package"


def field_type(node: ProtoField) -> str:
    """repeated string -> []string, .common.v1.Address -> Address."""
    type_name = clean_type_name(node.type_name)
    if node.is_repeated:
        return REPEATED_PREFIX + type_name
    return type_name


def _short_type_name(
    qualified: str,
    strip: Callable[[str], str],
    suffix: str,
    rpc_name: str,
) -> str:
    bare = clean_type_name(qualified)
    short = strip(bare)
    if short == bare:
        logger.warning(
            "rpc %s: type '%s' does not end in '%s'; using it unchanged",
            rpc_name, bare, suffix,
        )
    return short


class ModelBuilder(ProtoVisitor):
    """Accumulates services, methods, messages and fields during one walk.

    The message currently receiving fields is tracked as an index into this
    builder's own message list; fields seen while no message is open are
    dropped.
    """

    def __init__(self, source_file: str = ""):
        self._source_file = source_file
        self._package = ""
        self._go_package = ""
        self._imports: List[str] = []
        self._messages: List[MessageDescriptor] = []
        self._services: List[Tuple[str, List[MethodDescriptor]]] = []
        self._current_message: Optional[int] = None

    # -- visitor callbacks --

    def visit_package(self, node: ProtoPackage) -> None:
        self._package = node.name

    def visit_import(self, node: ProtoImport) -> None:
        self._imports.append(node.path)

    def visit_option(self, node: ProtoOption) -> None:
        if node.name == GO_PACKAGE_OPTION:
            # "path;alias" -> path
            self._go_package = node.value.split(";", 1)[0].strip()

    def visit_message(self, node: ProtoMessage) -> None:
        self._messages.append(MessageDescriptor(name=node.name))
        self._current_message = len(self._messages) - 1

    def visit_field(self, node: ProtoField) -> None:
        if self._current_message is None:
            return
        self._messages[self._current_message].fields.append(
            FieldDescriptor(
                name=node.field_name,
                type=field_type(node),
                number=node.field_number,
            )
        )

    def visit_service(self, node: ProtoService) -> None:
        self._services.append((service_or_method_name(node.name), []))

    def visit_rpc(self, node: ProtoRpc) -> None:
        if not self._services:
            return
        _, methods = self._services[-1]
        name = service_or_method_name(node.name)
        request_full = node.request_type[1:] if node.request_type.startswith(".") else node.request_type
        response_full = node.response_type[1:] if node.response_type.startswith(".") else node.response_type
        methods.append(
            MethodDescriptor(
                name=name,
                request_type_full=request_full,
                response_type_full=response_full,
                request_type_short=_short_type_name(request_full, strip_request_suffix, REQUEST_SUFFIX, name),
                response_type_short=_short_type_name(response_full, strip_reply_suffix, REPLY_SUFFIX, name),
                streaming_mode=StreamingMode.from_flags(node.request_stream, node.response_stream),
            )
        )

    # -- results --

    def build_all(self) -> List[ServiceDescriptor]:
        """One ServiceDescriptor per service, in declaration order."""
        if not self._services:
            where = f" in {self._source_file}" if self._source_file else ""
            raise EmptyModelError(f"No service definition found{where}")

        return [
            ServiceDescriptor(
                name=name,
                proto_package=self._package,
                go_package=self._go_package,
                methods=list(methods),
                messages=list(self._messages),
                import_paths=list(self._imports),
                source_file=self._source_file,
            )
            for name, methods in self._services
        ]

    def build(self) -> ServiceDescriptor:
        return self.build_all()[0]


def build_services(proto: ProtoFile, source_file: str = "") -> List[ServiceDescriptor]:
    """Walk a parsed proto file and return its services."""
    builder = ModelBuilder(source_file)
    walk(proto, builder)
    services = builder.build_all()
    logger.debug(
        "Built %d service(s) and %d message(s) from %s",
        len(services), len(services[0].messages), source_file or "<memory>",
    )
    return services
