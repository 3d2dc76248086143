from __future__ import annotations

import os
from typing import Dict, List

from protoc_scaffold.models import ServiceDescriptor, StreamingMode
from protoc_scaffold.naming import clean_type_name, to_lower_camel_case, to_upper_camel_case

from .common import (
    DEFAULT_BIZ_DIR,
    GenerationResult,
    RenderOptions,
    get_template_env,
    go_package_name,
    go_type,
    unique_messages,
    write_new_file,
)


def _entity_fields(service: ServiceDescriptor, request_type_full: str) -> List[Dict[str, str]]:
    """Fields of the request message backing an entity, when the file declares it."""
    message = service.find_message(clean_type_name(request_type_full))
    if message is None:
        return []
    return [
        {"name": to_upper_camel_case(f.name), "go_type": go_type(f.type), "comment": f.name}
        for f in message.fields
    ]


def _build_context(service: ServiceDescriptor, package_name: str, use_logger: bool) -> dict:
    entities = []
    seen = set()
    methods = []
    for m in service.methods:
        # a request type without the suffix is a message model.go already declares
        if (
            m.request_type_short
            and m.request_type_short not in seen
            and service.find_message(m.request_type_short) is None
        ):
            seen.add(m.request_type_short)
            entities.append({
                "name": m.request_type_short,
                "fields": _entity_fields(service, m.request_type_full),
            })
        comment = f"{m.name} handles {m.request_type_full}"
        if m.streaming_mode != StreamingMode.UNARY:
            comment += f" ({m.streaming_mode.value.replace('_', ' ')} rpc)"
        methods.append({
            "name": m.name,
            "param_name": to_lower_camel_case(m.request_type_short),
            "param_type": "*" + m.request_type_short,
            "return_type": "*" + m.response_type_short,
            "comment": comment,
        })

    return {
        "package_name": package_name,
        "service_name": service.name,
        "entities": entities,
        "methods": methods,
        "use_logger": use_logger,
    }


def generate_biz_usecase(service: ServiceDescriptor, package_name: str = "biz", use_logger: bool = True) -> str:
    """Generate the UseCase + Repo interface Go source for one service."""
    template = get_template_env().get_template("biz_usecase.go.j2")
    return template.render(**_build_context(service, package_name, use_logger))


def generate_biz_models(service: ServiceDescriptor, package_name: str = "biz") -> str:
    """Generate domain model structs for every message of the schema."""
    template = get_template_env().get_template("biz_model.go.j2")
    return template.render(package_name=package_name, messages=unique_messages(service.messages))


def generate_biz(services: List[ServiceDescriptor], options: RenderOptions) -> GenerationResult:
    """Write biz layer files for all services; existing files are skipped.

    Returns generated and skipped file paths.
    """
    target_dir = options.target_dir or DEFAULT_BIZ_DIR
    package_name = go_package_name(target_dir, "biz")
    os.makedirs(target_dir, exist_ok=True)

    result = GenerationResult()
    outputs = [
        (f"{service.name.lower()}.go", generate_biz_usecase(service, package_name, options.use_logger))
        for service in services
    ]
    if services:
        outputs.append(("model.go", generate_biz_models(services[0], package_name)))

    for file_name, source in outputs:
        file_path = os.path.join(target_dir, file_name)
        if write_new_file(file_path, source):
            result.generated.append(file_path)
        else:
            result.skipped.append(file_path)
    return result
