"""
Shared descriptor models for the autodocs pipeline.

Every extractor and the OpenAPI synthesizer import from this module.
Descriptors are frozen value objects: once a service has been scanned its
metadata tree is never mutated.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union


# =============================================================================
# ENUMS
# =============================================================================

class TypeKind(Enum):
    PRIMITIVE = "primitive"
    ARRAY = "array"
    ENUM = "enum"
    UNION = "union"
    OBJECT = "object"
    REFERENCE = "reference"
    UNKNOWN = "unknown"


class ParamLocation(Enum):
    PATH = "path"
    QUERY = "query"
    HEADER = "header"
    BODY = "body"


class HttpMethod(Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


EnumValue = Union[str, int, float]


# =============================================================================
# TYPE METADATA
# =============================================================================

@dataclass(frozen=True)
class ConstraintDescriptor:
    """One recognized validation annotation, mapped to schema keywords."""
    kind: str
    args: Tuple[Any, ...] = ()
    constraints: Tuple[Tuple[str, Any], ...] = ()

    @property
    def constraint_map(self) -> Dict[str, Any]:
        return dict(self.constraints)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "args": list(self.args),
            "constraints": self.constraint_map,
        }


@dataclass(frozen=True)
class TypeDescriptor:
    """Resolved, finite structural representation of a declared type."""
    kind: TypeKind
    name: str
    is_array: bool = False
    element_type: Optional[TypeDescriptor] = None
    properties: Optional[Tuple[PropertyDescriptor, ...]] = None
    union_members: Optional[Tuple[str, ...]] = None
    enum_values: Optional[Tuple[EnumValue, ...]] = None
    format: Optional[str] = None

    @property
    def is_primitive(self) -> bool:
        return self.kind == TypeKind.PRIMITIVE

    @property
    def is_object(self) -> bool:
        return self.kind == TypeKind.OBJECT

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "kind": self.kind.value,
            "name": self.name,
            "is_array": self.is_array,
        }
        if self.element_type is not None:
            data["element_type"] = self.element_type.to_dict()
        if self.properties is not None:
            data["properties"] = [p.to_dict() for p in self.properties]
        if self.union_members is not None:
            data["union_members"] = list(self.union_members)
        if self.enum_values is not None:
            data["enum_values"] = list(self.enum_values)
        if self.format:
            data["format"] = self.format
        return data


@dataclass(frozen=True)
class PropertyDescriptor:
    """A declared property of an object shape."""
    name: str
    type: TypeDescriptor
    required: bool
    description: Optional[str] = None
    constraints: Tuple[ConstraintDescriptor, ...] = ()
    example: Any = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.name,
            "type": self.type.to_dict(),
            "required": self.required,
            "constraints": [c.to_dict() for c in self.constraints],
        }
        if self.description:
            data["description"] = self.description
        if self.example is not None:
            data["example"] = self.example
        return data


@dataclass(frozen=True)
class ObjectMetadata:
    """A request or response object shape attached to a route."""
    name: str
    properties: Tuple[PropertyDescriptor, ...] = ()
    description: Optional[str] = None
    is_array: bool = False
    is_inline: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.name,
            "properties": [p.to_dict() for p in self.properties],
            "is_array": self.is_array,
            "is_inline": self.is_inline,
        }
        if self.description:
            data["description"] = self.description
        return data


# =============================================================================
# ROUTE / SERVICE METADATA
# =============================================================================

@dataclass(frozen=True)
class ParameterDescriptor:
    name: str
    location: ParamLocation
    type: TypeDescriptor
    required: bool
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.name,
            "in": self.location.value,
            "type": self.type.to_dict(),
            "required": self.required,
        }
        if self.description:
            data["description"] = self.description
        return data


@dataclass(frozen=True)
class RouteDescriptor:
    """One handler bound to an HTTP method and a path template."""
    name: str
    http_method: HttpMethod
    route_path: str
    full_path: str
    description: Optional[str] = None
    parameters: Tuple[ParameterDescriptor, ...] = ()
    request_body: Optional[ObjectMetadata] = None
    response_type: Optional[ObjectMetadata] = None
    guards: Tuple[str, ...] = ()
    is_public: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "http_method": self.http_method.value,
            "route_path": self.route_path,
            "full_path": self.full_path,
            "description": self.description,
            "parameters": [p.to_dict() for p in self.parameters],
            "request_body": self.request_body.to_dict() if self.request_body else None,
            "response_type": self.response_type.to_dict() if self.response_type else None,
            "guards": list(self.guards),
            "is_public": self.is_public,
        }


@dataclass(frozen=True)
class ServiceDescriptor:
    """Metadata for one scanned service declaration."""
    name: str
    base_path: str
    source_location: str
    category: str
    version: Optional[str] = None
    description: Optional[str] = None
    routes: Tuple[RouteDescriptor, ...] = ()
    guards: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "base_path": self.base_path,
            "source_location": self.source_location,
            "category": self.category,
            "version": self.version,
            "description": self.description,
            "routes": [r.to_dict() for r in self.routes],
            "guards": list(self.guards),
        }


@dataclass(frozen=True)
class ServiceGroupDescriptor:
    """A grouping declaration; only used to resolve category labels."""
    name: str
    source_location: str
    member_service_names: Tuple[str, ...] = ()
    imported_group_names: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "source_location": self.source_location,
            "member_service_names": list(self.member_service_names),
            "imported_group_names": list(self.imported_group_names),
        }


def all_routes(services: List[ServiceDescriptor]) -> List[RouteDescriptor]:
    return [route for service in services for route in service.routes]
