from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import List, Optional

from protoc_scaffold.errors import ProtoScaffoldError
from protoc_scaffold.generator.biz_generator import generate_biz
from protoc_scaffold.generator.common import (
    DEFAULT_BIZ_DIR,
    DEFAULT_DATA_DIR,
    DEFAULT_DB_PKG,
    DEFAULT_DOMAIN_PKG,
    GenerationResult,
    RenderOptions,
)
from protoc_scaffold.generator.data_generator import generate_data
from protoc_scaffold.models import ServiceDescriptor
from protoc_scaffold.parser.descriptor_parser import parse_descriptor_set_file, parse_proto_via_protoc
from protoc_scaffold.parser.proto_parser import parse_proto_file_services


def load_services(
    proto_path: str,
    descriptor: bool = False,
    use_protoc: bool = False,
    include_dirs: Optional[List[str]] = None,
) -> List[ServiceDescriptor]:
    """Pick the extraction strategy for proto_path and return its services."""
    if descriptor:
        return parse_descriptor_set_file(proto_path)
    if use_protoc:
        return parse_proto_via_protoc(proto_path, include_dirs or [])
    return parse_proto_file_services(proto_path)


def _report(layer: str, result: GenerationResult) -> None:
    for f in result.skipped:
        print(f"{layer} file already exists: {f}", file=sys.stderr)
    for f in result.generated:
        print(f"generated {layer} file: {f}")


def run(command: str, proto_path: str, options: RenderOptions, descriptor: bool = False,
        use_protoc: bool = False, include_dirs: Optional[List[str]] = None) -> None:
    """Main pipeline: parse, then render the requested layer."""
    try:
        services = load_services(proto_path, descriptor, use_protoc, include_dirs)
    except ProtoScaffoldError as e:
        print(f"FATAL: {e}", file=sys.stderr)
        sys.exit(1)

    if command == "show":
        print(json.dumps([s.to_dict() for s in services], indent=2))
        return

    print(f"Parsed {proto_path}: {len(services)} service(s), {len(services[0].messages)} message(s)")

    if not os.path.isdir(options.target_dir):
        print(f"Target directory: {options.target_dir} does not exist, creating...")

    try:
        if command == "biz":
            result = generate_biz(services, options)
        else:
            result = generate_data(services, options)
    except OSError as e:
        print(f"FATAL: failed to write {command} files: {e}", file=sys.stderr)
        sys.exit(1)

    _report(command, result)


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("proto", help="Path to the .proto file (or descriptor set with --descriptor)")
    source = parser.add_mutually_exclusive_group()
    source.add_argument(
        "--descriptor",
        action="store_true",
        help="Treat the input as a binary FileDescriptorSet (protoc --descriptor_set_out)",
    )
    source.add_argument(
        "--protoc",
        action="store_true",
        help="Compile the .proto with protoc and read its descriptors instead of parsing the text",
    )
    parser.add_argument(
        "-I", "--include",
        action="append",
        default=[],
        help="Extra protoc include path (repeatable, used with --protoc)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(
        prog="protoc-scaffold",
        description="Generate go-kratos biz and data layer code from a .proto service definition",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    biz = subparsers.add_parser("biz", help="Generate the biz layer (UseCase + Repo interface)")
    _add_common_arguments(biz)
    biz.add_argument("-t", "--target-dir", default=DEFAULT_BIZ_DIR, help="generate target directory")
    biz.add_argument("--use-logger", action=argparse.BooleanOptionalAction, default=True,
                     help="whether to use kratos logger")

    data = subparsers.add_parser("data", help="Generate the data layer (Repo implementation)")
    _add_common_arguments(data)
    data.add_argument("-t", "--target-dir", default=DEFAULT_DATA_DIR, help="generate target directory")
    data.add_argument("-d", "--domain-pkg", default=DEFAULT_DOMAIN_PKG,
                      help="domain layer package path (for Repo interface)")
    data.add_argument("-p", "--proto-pkg", default="",
                      help="proto PB package path (defaults to the file's go_package)")
    data.add_argument("-b", "--db-pkg", default=DEFAULT_DB_PKG,
                      help="database package path (e.g. gorm.io/gorm, database/sql)")
    data.add_argument("-c", "--cache-pkg", default="",
                      help="cache package path (e.g. github.com/redis/go-redis/v9, optional)")
    data.add_argument("--use-logger", action=argparse.BooleanOptionalAction, default=True,
                      help="whether to use kratos logger")

    show = subparsers.add_parser("show", help="Print the parsed model as JSON")
    _add_common_arguments(show)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    options = RenderOptions(
        target_dir=getattr(args, "target_dir", ""),
        domain_pkg=getattr(args, "domain_pkg", DEFAULT_DOMAIN_PKG),
        proto_pkg=getattr(args, "proto_pkg", ""),
        db_pkg=getattr(args, "db_pkg", DEFAULT_DB_PKG),
        cache_pkg=getattr(args, "cache_pkg", ""),
        use_logger=getattr(args, "use_logger", True),
    )
    run(args.command, args.proto, options, args.descriptor, args.protoc, args.include)


if __name__ == "__main__":
    main()
