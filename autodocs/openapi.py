"""
OpenAPI 3.0 synthesis from scanned service descriptors.

``synthesize(services, config)`` is a pure function of its inputs: every call
builds its own schema registry, the paths and component tables are emitted
in sorted order, and the returned document shares no objects with the
descriptors. Calling it twice on the same input yields byte-identical JSON.
"""

import copy
import json
import logging
import re
from typing import Any, Dict, Iterable, List, Optional, Sequence

import yaml

from autodocs.base import (
    HttpMethod,
    ObjectMetadata,
    ParameterDescriptor,
    PropertyDescriptor,
    RouteDescriptor,
    ServiceDescriptor,
    TypeDescriptor,
    TypeKind,
)
from autodocs.config import AutoDocsConfig
from autodocs.declarations import NULL_TYPE_NAMES
from autodocs.deterministic.constraint_mapper import merge_constraints
from autodocs.deterministic.example_generator import ExampleGenerator
from autodocs.deterministic.path_utils import combine_path_segments, convert_path_parameters
from autodocs.deterministic.type_resolver import INLINE_TYPE_NAME, TypeResolver

logger = logging.getLogger("autodocs.openapi")

OPENAPI_VERSION = "3.0.0"
SCHEMA_REF_PREFIX = "#/components/schemas/"
JSON_MEDIA_TYPE = "application/json"

SUCCESS_RESPONSES = {
    HttpMethod.GET: ("200", "Successful retrieval"),
    HttpMethod.POST: ("201", "Resource created successfully"),
    HttpMethod.PUT: ("200", "Resource updated successfully"),
    HttpMethod.PATCH: ("200", "Resource partially updated"),
    HttpMethod.DELETE: ("200", "Resource deleted successfully"),
}
UNAUTHORIZED_RESPONSE = ("401", "Unauthorized")


def schema_ref(name: str) -> Dict[str, str]:
    return {"$ref": f"{SCHEMA_REF_PREFIX}{name}"}


def _enum_type(values: Sequence[Any]) -> Optional[str]:
    if not values:
        return None
    if all(isinstance(v, bool) for v in values):
        return "boolean"
    if all(isinstance(v, int) and not isinstance(v, bool) for v in values):
        return "integer"
    if all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in values):
        return "number"
    return "string"


def _version_key(version: str):
    digits = re.sub(r"\D", "", version)
    return (int(digits) if digits else float("inf"), version)


def _quoted_literal(text: str) -> Optional[str]:
    text = text.strip()
    if len(text) >= 2 and text[0] == text[-1] and text[0] in "'\"`":
        return text[1:-1]
    return None


class _SchemaRegistry:
    """Component schemas collected during one synthesis pass."""

    def __init__(self):
        self.schemas: Dict[str, Dict[str, Any]] = {}
        self.inline_names: Dict[str, str] = {}

    def has(self, name: str) -> bool:
        return name in self.schemas

    def reserve(self, name: str):
        self.schemas.setdefault(name, {})

    def register(self, name: str, schema: Dict[str, Any]):
        self.schemas[name] = schema

    def register_inline(self, schema: Dict[str, Any]) -> str:
        """Structurally identical anonymous shapes share one synthetic name."""
        signature = json.dumps(schema, sort_keys=True, default=str)
        if signature in self.inline_names:
            return self.inline_names[signature]

        name, counter = INLINE_TYPE_NAME, 1
        while name in self.schemas:
            name = f"{INLINE_TYPE_NAME}{counter}"
            counter += 1
        self.inline_names[signature] = name
        self.schemas[name] = schema
        return name


class OpenAPISynthesizer:
    """
    Fold ServiceDescriptors into one OpenAPI 3.0 document.

    Versioning enabled:  <prefix>/<version>/<route>, one server per version
    Versioning disabled: <globalPrefix>/<route>, a single server
    """

    def __init__(self, config: AutoDocsConfig, example_generator: Optional[ExampleGenerator] = None):
        self.config = config
        self.examples = example_generator or ExampleGenerator()

    # -------------------------------------------------------------------------
    # Document
    # -------------------------------------------------------------------------

    def synthesize(self, services: Sequence[ServiceDescriptor]) -> Dict[str, Any]:
        registry = _SchemaRegistry()
        operation_ids: Dict[str, int] = {}
        paths: Dict[str, Dict[str, Any]] = {}

        for service in services:
            prefix_segments = self._prefix_segments(service)
            for route in service.routes:
                key = convert_path_parameters(combine_path_segments(prefix_segments + [route.full_path]))
                method = route.http_method.value.lower()
                path_item = paths.setdefault(key, {})
                if method in path_item:
                    logger.warning(
                        f"Duplicate operation {route.http_method.value} {key} from "
                        f"{service.name}.{route.name}; keeping the first definition"
                    )
                    continue
                path_item[method] = self._operation(service, route, registry, operation_ids)

        info: Dict[str, Any] = {"title": self.config.title, "version": self.config.version}
        if self.config.description:
            info["description"] = self.config.description

        security_schemes: Dict[str, Any] = {}
        if self.config.include_security:
            security_schemes[self.config.security_scheme_name] = self.config.security_scheme_object

        document = {
            "openapi": OPENAPI_VERSION,
            "info": info,
            "servers": self._servers(services),
            "paths": {key: paths[key] for key in sorted(paths)},
            "components": {
                "schemas": {name: registry.schemas[name] for name in sorted(registry.schemas)},
                "securitySchemes": security_schemes,
            },
            "tags": [{"name": category} for category in sorted({s.category for s in services})],
            "security": [],
        }

        logger.info(
            f"Synthesized {sum(len(item) for item in paths.values())} operations on {len(paths)} paths, "
            f"{len(registry.schemas)} schemas, {len(document['tags'])} tags"
        )
        return copy.deepcopy(document)

    def _prefix_segments(self, service: ServiceDescriptor) -> List[Optional[str]]:
        versioning = self.config.versioning
        if not versioning.enabled:
            return [self.config.global_prefix]
        if service.version:
            return [versioning.prefix, service.version]
        return [versioning.fallback or versioning.prefix]

    def _servers(self, services: Sequence[ServiceDescriptor]) -> List[Dict[str, Any]]:
        versioning = self.config.versioning
        if not versioning.enabled:
            if self.config.servers:
                # One server entry; the first configured one
                return [dict(self.config.servers[0])]
            return [{"url": "/" + combine_path_segments([self.config.global_prefix]), "description": self.config.title}]

        servers = [
            {"url": "/" + combine_path_segments([versioning.prefix, version]), "description": f"API {version.upper()}"}
            for version in sorted({s.version for s in services if s.version}, key=_version_key)
        ]
        if any(not s.version for s in services):
            fallback_url = "/" + combine_path_segments([versioning.fallback or versioning.prefix])
            if fallback_url not in {server["url"] for server in servers}:
                servers.append({"url": fallback_url, "description": "API"})
        return servers

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def _operation(self, service: ServiceDescriptor, route: RouteDescriptor,
                   registry: _SchemaRegistry, operation_ids: Dict[str, int]) -> Dict[str, Any]:
        operation: Dict[str, Any] = {
            "operationId": self._operation_id(service, route, operation_ids),
            "tags": [service.category],
        }
        if route.description:
            operation["summary"] = route.description.splitlines()[0].strip()
            operation["description"] = route.description

        if route.parameters:
            operation["parameters"] = [self._parameter(p, registry) for p in route.parameters]

        if route.request_body is not None:
            operation["requestBody"] = {
                "required": True,
                "content": {JSON_MEDIA_TYPE: self._media_type(route.request_body, registry, with_example=True)},
            }

        status, description = SUCCESS_RESPONSES[route.http_method]
        success: Dict[str, Any] = {"description": description}
        if route.response_type is not None:
            success["content"] = {JSON_MEDIA_TYPE: self._media_type(route.response_type, registry)}
        responses = {status: success}

        secured = self.config.include_security and not route.is_public
        if secured:
            responses[UNAUTHORIZED_RESPONSE[0]] = {"description": UNAUTHORIZED_RESPONSE[1]}
            operation["security"] = [{self.config.security_scheme_name: []}]
        operation["responses"] = responses

        if route.guards:
            operation["x-guards"] = list(route.guards)
        return operation

    @staticmethod
    def _operation_id(service: ServiceDescriptor, route: RouteDescriptor, seen: Dict[str, int]) -> str:
        base = re.sub(r'[^A-Za-z0-9_]', '_', f"{service.name}_{route.name}")
        count = seen.get(base, 0) + 1
        seen[base] = count
        return base if count == 1 else f"{base}_{count}"

    def _parameter(self, parameter: ParameterDescriptor, registry: _SchemaRegistry) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": parameter.name,
            "in": parameter.location.value,
            "required": parameter.required,
            "schema": self.type_schema(parameter.type, registry),
        }
        if parameter.description:
            data["description"] = parameter.description
        return data

    def _media_type(self, metadata: ObjectMetadata, registry: _SchemaRegistry,
                    with_example: bool = False) -> Dict[str, Any]:
        schema = self.object_schema_ref(metadata.name, metadata.properties, metadata.is_inline, registry)
        if metadata.is_array:
            schema = {"type": "array", "items": schema}
        media: Dict[str, Any] = {"schema": schema}
        if with_example:
            example = self.examples.example_for_object(metadata.properties)
            media["example"] = [example] if metadata.is_array else example
        return media

    # -------------------------------------------------------------------------
    # Schemas
    # -------------------------------------------------------------------------

    def object_schema_ref(self, name: str, properties: Iterable[PropertyDescriptor], inline: bool,
                          registry: _SchemaRegistry) -> Dict[str, Any]:
        """Register an object shape once and return a reference to it."""
        if inline or name == INLINE_TYPE_NAME:
            return schema_ref(registry.register_inline(self.object_schema(properties, registry)))
        if not registry.has(name):
            registry.reserve(name)
            registry.register(name, self.object_schema(properties, registry))
        return schema_ref(name)

    def object_schema(self, properties: Iterable[PropertyDescriptor], registry: _SchemaRegistry) -> Dict[str, Any]:
        schema: Dict[str, Any] = {"type": "object", "properties": {}}
        required: List[str] = []

        for prop in properties:
            prop_schema = self.type_schema(prop.type, registry)
            constraints = merge_constraints(prop.constraints)
            is_required = constraints.pop("required", prop.required)

            if constraints or prop.description:
                if "$ref" in prop_schema:
                    prop_schema = {"allOf": [prop_schema]}
                if "type" in prop_schema and "type" in constraints and prop_schema["type"] == "array" \
                        and constraints["type"] != "array":
                    constraints.pop("type")
                prop_schema.update(constraints)
            if prop.description:
                prop_schema["description"] = prop.description

            if prop.type.kind in (TypeKind.PRIMITIVE, TypeKind.ENUM):
                example = prop.example if prop.example is not None else self.examples.example_for(prop)
                if example is not None:
                    prop_schema["example"] = example

            schema["properties"][prop.name] = prop_schema
            if is_required:
                required.append(prop.name)

        if required:
            schema["required"] = required
        return schema

    def type_schema(self, descriptor: TypeDescriptor, registry: _SchemaRegistry) -> Dict[str, Any]:
        kind = descriptor.kind

        if kind == TypeKind.PRIMITIVE:
            schema: Dict[str, Any] = {"type": descriptor.name}
            if descriptor.format:
                schema["format"] = descriptor.format
            return schema

        if kind == TypeKind.ARRAY:
            items = self.type_schema(descriptor.element_type, registry) if descriptor.element_type else {}
            return {"type": "array", "items": items}

        if kind == TypeKind.ENUM:
            values = list(descriptor.enum_values or ())
            enum_type = _enum_type(values)
            return {"type": enum_type, "enum": values} if enum_type else {"enum": values}

        if kind == TypeKind.UNION:
            return self._union_schema(descriptor.union_members or ())

        if kind == TypeKind.OBJECT:
            return self.object_schema_ref(descriptor.name, descriptor.properties or (), False, registry)

        if kind == TypeKind.REFERENCE:
            return schema_ref(descriptor.name)

        return {"x-unresolved-type": descriptor.name}

    @staticmethod
    def _union_schema(members: Sequence[str]) -> Dict[str, Any]:
        """Unions stay shallow: literal unions become enums, others a oneOf of member types."""
        present = [m for m in members if m.strip() not in NULL_TYPE_NAMES]
        nullable = len(present) != len(members)

        literals = [_quoted_literal(m) for m in present]
        if present and all(value is not None for value in literals):
            schema: Dict[str, Any] = {"type": "string", "enum": literals}
        else:
            alternatives = []
            for member in present:
                mapping = TypeResolver.TYPE_MAPPINGS.get(member.strip())
                if mapping is not None:
                    alternative: Dict[str, Any] = {"type": mapping[0]}
                    if mapping[1]:
                        alternative["format"] = mapping[1]
                else:
                    alternative = {"type": "object", "title": member.strip()}
                if alternative not in alternatives:
                    alternatives.append(alternative)
            schema = alternatives[0] if len(alternatives) == 1 else {"oneOf": alternatives}

        if nullable:
            schema = dict(schema, nullable=True)
        return schema


# =============================================================================
# CONVENIENCE
# =============================================================================

def synthesize(services: Sequence[ServiceDescriptor], config: AutoDocsConfig) -> Dict[str, Any]:
    return OpenAPISynthesizer(config).synthesize(services)


def to_json(document: Dict[str, Any], indent: int = 2) -> str:
    return json.dumps(document, indent=indent, ensure_ascii=False)


def to_yaml(document: Dict[str, Any]) -> str:
    return yaml.safe_dump(document, sort_keys=False, allow_unicode=True, default_flow_style=False)
