from __future__ import annotations

import os
from typing import List

from protoc_scaffold.models import ServiceDescriptor
from protoc_scaffold.naming import go_package_alias, to_snake_case

from .common import (
    DEFAULT_DATA_DIR,
    GenerationResult,
    RenderOptions,
    get_template_env,
    go_package_name,
    unique_messages,
    write_new_file,
)


def _build_context(service: ServiceDescriptor, options: RenderOptions, package_name: str) -> dict:
    domain_alias = go_package_alias(options.domain_pkg)
    methods = [
        {
            "name": m.name,
            "repo_name": f"{service.name}Repo",
            "param_type": f"*{domain_alias}.{m.request_type_short}",
            "return_type": f"*{domain_alias}.{m.response_type_short}",
        }
        for m in service.methods
    ]
    return {
        "package_name": package_name,
        "service_name": service.name,
        "domain_pkg": options.domain_pkg,
        "domain_alias": domain_alias,
        # --proto-pkg wins over the schema's own go_package
        "proto_pkg": options.proto_pkg or service.go_package,
        "db_pkg": options.db_pkg,
        "db_alias": go_package_alias(options.db_pkg),
        "cache_pkg": options.cache_pkg,
        "cache_alias": go_package_alias(options.cache_pkg),
        "use_logger": options.use_logger,
        "methods": methods,
    }


def generate_data_repo(service: ServiceDescriptor, options: RenderOptions, package_name: str = "data") -> str:
    """Generate the Repo implementation Go source for one service."""
    template = get_template_env().get_template("data_repo.go.j2")
    return template.render(**_build_context(service, options, package_name))


def generate_data_models(service: ServiceDescriptor, package_name: str = "data") -> str:
    """Generate persistence models (one table per message)."""
    template = get_template_env().get_template("data_model.go.j2")
    messages = [
        {"name": msg.name, "fields": msg.fields, "table_name": to_snake_case(msg.name)}
        for msg in unique_messages(service.messages)
    ]
    return template.render(package_name=package_name, messages=messages)


def generate_data(services: List[ServiceDescriptor], options: RenderOptions) -> GenerationResult:
    """Write one repo file per service plus a shared model file; never overwrites."""
    target_dir = options.target_dir or DEFAULT_DATA_DIR
    package_name = go_package_name(target_dir, "data")
    os.makedirs(target_dir, exist_ok=True)

    outputs = [
        (f"{service.name.lower()}_repo.go", generate_data_repo(service, options, package_name))
        for service in services
    ]
    if services:
        outputs.append(("model.go", generate_data_models(services[0], package_name)))

    result = GenerationResult()
    for file_name, source in outputs:
        file_path = os.path.join(target_dir, file_name)
        if write_new_file(file_path, source):
            result.generated.append(file_path)
        else:
            result.skipped.append(file_path)
    return result
