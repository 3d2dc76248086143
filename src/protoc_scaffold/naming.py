"""Pure name transforms shared by the model builder and the generators."""

from __future__ import annotations

import re

REQUEST_SUFFIX = "Request"
REPLY_SUFFIX = "Reply"


def to_upper_camel_case(name: str) -> str:
    """Convert snake_case to UpperCamelCase: user_create -> UserCreate.

    Only the first letter of each segment is touched, so names that are
    already camel-cased keep their inner capitals.
    """
    return "".join(part[:1].title() + part[1:] for part in name.split("_"))


def to_lower_camel_case(name: str) -> str:
    """Convert snake_case or UpperCamelCase to lowerCamelCase."""
    upper = to_upper_camel_case(name)
    return upper[:1].lower() + upper[1:]


def to_snake_case(name: str) -> str:
    """UserService -> user_service, HTTPInfo -> http_info."""
    s = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", name)
    s = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", s)
    return s.lower()


def service_or_method_name(name: str) -> str:
    """Drop any package qualification, then UpperCamelCase the rest."""
    return to_upper_camel_case(name.split(".", 1)[0])


def clean_type_name(qualified: str) -> str:
    """'.user.v1.CreateUserRequest' -> 'CreateUserRequest'."""
    if qualified.startswith("."):
        qualified = qualified[1:]
    return qualified.rsplit(".", 1)[-1]


def strip_request_suffix(name: str) -> str:
    if name.endswith(REQUEST_SUFFIX):
        return name[: -len(REQUEST_SUFFIX)]
    return name


def strip_reply_suffix(name: str) -> str:
    if name.endswith(REPLY_SUFFIX):
        return name[: -len(REPLY_SUFFIX)]
    return name


def go_package_alias(import_path: str) -> str:
    """Identifier Go code uses for an import path.

    gorm.io/gorm -> gorm, database/sql -> sql,
    github.com/redis/go-redis/v9 -> redis
    """
    parts = [p for p in import_path.strip("/").split("/") if p]
    if not parts:
        return ""
    alias = parts[-1]
    if re.fullmatch(r"v\d+", alias) and len(parts) > 1:
        alias = parts[-2]
    if alias.startswith("go-"):
        alias = alias[len("go-"):]
    return re.sub(r"\W", "_", alias.replace("-", "_"))
