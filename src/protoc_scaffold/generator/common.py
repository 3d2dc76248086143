from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Sequence

from jinja2 import Environment, FileSystemLoader

from protoc_scaffold.models import REPEATED_PREFIX, MessageDescriptor
from protoc_scaffold.naming import go_package_alias, to_lower_camel_case, to_upper_camel_case

logger = logging.getLogger(__name__)

DEFAULT_BIZ_DIR = "internal/biz"
DEFAULT_DATA_DIR = "internal/data"
DEFAULT_DOMAIN_PKG = "internal/domain"
DEFAULT_DB_PKG = "gorm.io/gorm"

# Proto scalar -> Go type
GO_TYPE_MAP: Dict[str, str] = {
    "int32": "int32",
    "sint32": "int32",
    "sfixed32": "int32",
    "uint32": "uint32",
    "fixed32": "uint32",
    "int64": "int64",
    "sint64": "int64",
    "sfixed64": "int64",
    "uint64": "uint64",
    "fixed64": "uint64",
    "float": "float32",
    "float32": "float32",
    "double": "float64",
    "float64": "float64",
    "bool": "bool",
    "string": "string",
    "bytes": "[]byte",
}


@dataclass
class RenderOptions:
    """Settings shared by the biz and data generators."""

    target_dir: str = ""
    domain_pkg: str = DEFAULT_DOMAIN_PKG
    proto_pkg: str = ""
    db_pkg: str = DEFAULT_DB_PKG
    cache_pkg: str = ""
    use_logger: bool = True


@dataclass
class GenerationResult:
    generated: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)


def go_type(field_type: str) -> str:
    """Map a model field type to a Go type: []string -> []string, Address -> *Address."""
    repeated = field_type.startswith(REPEATED_PREFIX)
    base = field_type[len(REPEATED_PREFIX):] if repeated else field_type
    go = GO_TYPE_MAP.get(base, "*" + base)
    return REPEATED_PREFIX + go if repeated else go


def go_package_name(target_dir: str, default: str) -> str:
    """Package clause for files written into target_dir."""
    name = os.path.basename(os.path.normpath(target_dir))
    return name if name.isidentifier() else default


def get_template_env() -> Environment:
    template_dir = Path(__file__).parent.parent / "templates"
    env = Environment(
        loader=FileSystemLoader(str(template_dir)),
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters["go_type"] = go_type
    env.filters["upper_camel"] = to_upper_camel_case
    env.filters["lower_camel"] = to_lower_camel_case
    env.filters["go_alias"] = go_package_alias
    return env


def write_new_file(file_path: str, content: str) -> bool:
    """Create file_path with content; False if it already exists (never overwrites)."""
    try:
        with open(file_path, "x", encoding="utf-8") as f:
            f.write(content)
    except FileExistsError:
        return False
    return True



def unique_messages(messages: Sequence[MessageDescriptor]) -> List[MessageDescriptor]:
    """Messages with distinct names, first declaration wins.

    Nested messages keep their simple name, so Order.Item and Cart.Item
    would otherwise become two `type Item struct` in one Go package.
    """
    seen = set()
    result = []
    for msg in messages:
        if msg.name in seen:
            logger.warning("message %s declared more than once; only the first is rendered", msg.name)
            continue
        seen.add(msg.name)
        result.append(msg)
    return result
