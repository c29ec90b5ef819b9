#!/usr/bin/env python3
"""
Route Extractor
===============
Assemble RouteDescriptors from a service declaration's handlers.

- @Get(":id") findOne(@Param("id") id)   → GET <base>/:id, path parameter "id"
- @Post() create(@Body() dto: CreateDto)  → POST <base>, requestBody CreateDto
- @UseGuards(JwtGuard)                    → guards ["JwtGuard"]
- @Public() / @SkipAuth()                 → is_public

A handler is a route only if it carries exactly one HTTP-method decorator.
Body arguments never appear in ``parameters``; they become the request body
when (and only when) their type resolves to an object shape.
"""

import logging
from typing import Iterable, List, Optional, Tuple

from autodocs.base import (
    HttpMethod,
    ObjectMetadata,
    ParamLocation,
    ParameterDescriptor,
    RouteDescriptor,
    TypeDescriptor,
    TypeKind,
)
from autodocs.declarations import ClassDeclaration, MethodDeclaration, ParameterDeclaration, TypeRef, UNION_TYPE_NAME
from autodocs.deterministic.path_utils import combine_path_segments
from autodocs.deterministic.type_resolver import TypeResolver

logger = logging.getLogger("autodocs.deterministic.route_extractor")

HTTP_METHOD_DECORATORS = {
    'Get': HttpMethod.GET,
    'Post': HttpMethod.POST,
    'Put': HttpMethod.PUT,
    'Patch': HttpMethod.PATCH,
    'Delete': HttpMethod.DELETE,
}

PARAMETER_BINDINGS = {
    'Param': ParamLocation.PATH,
    'Query': ParamLocation.QUERY,
    'Header': ParamLocation.HEADER,
    'Headers': ParamLocation.HEADER,
    'Body': ParamLocation.BODY,
}

GUARD_DECORATORS = {'UseGuards'}
PUBLIC_DECORATORS = {'Public', 'SkipAuth', 'AllowAnonymous'}

VOID_TYPE_NAMES = {'void', 'None', 'NoneType', 'undefined', 'null', 'never', 'NoReturn', 'any', 'Any'}

# Untyped arguments are bound from the request as text
DEFAULT_PARAMETER_TYPE = TypeRef(name='string', text='string')


def strip_nullable(type_ref: TypeRef) -> Tuple[TypeRef, bool]:
    """``T | null`` / ``Optional[T]`` → (T, True); anything else unchanged."""
    if not type_ref.is_union:
        return type_ref, False
    present = [member for member in type_ref.args if not member.is_null]
    nullable = len(present) != len(type_ref.args)
    if len(present) == 1:
        return present[0], nullable
    if nullable:
        text = " | ".join(member.display for member in present)
        return TypeRef(name=UNION_TYPE_NAME, args=present, text=text), True
    return type_ref, False


def collect_guards(decorators) -> List[str]:
    guards: List[str] = []
    for decorator in decorators:
        if decorator.name in GUARD_DECORATORS:
            guards.extend(arg for arg in decorator.args if arg)
    return guards


def merge_unique(*groups: Iterable[str]) -> Tuple[str, ...]:
    merged: List[str] = []
    for group in groups:
        for item in group:
            if item not in merged:
                merged.append(item)
    return tuple(merged)


class RouteExtractor:
    """Per-handler route assembly on top of a TypeResolver."""

    def __init__(self, resolver: TypeResolver):
        self.resolver = resolver

    def extract_routes(self, declaration: ClassDeclaration, base_path: str,
                       class_guards: Iterable[str] = ()) -> List[RouteDescriptor]:
        class_guards = list(class_guards)
        routes = []
        for method in declaration.methods:
            route = self.extract_route(method, base_path, class_guards)
            if route is not None:
                routes.append(route)
        logger.debug(f"{declaration.name}: {len(routes)} routes from {len(declaration.methods)} handlers")
        return routes

    def extract_route(self, method: MethodDeclaration, base_path: str,
                      class_guards: Iterable[str] = ()) -> Optional[RouteDescriptor]:
        method_decorators = [d for d in method.decorators if d.name in HTTP_METHOD_DECORATORS]
        if len(method_decorators) != 1:
            if len(method_decorators) > 1:
                logger.debug(f"Skipping {method.name}: {len(method_decorators)} HTTP-method decorators")
            return None

        method_decorator = method_decorators[0]
        route_path = method_decorator.args[0] if method_decorator.args else ""

        parameters, request_body = self._extract_parameters(method.parameters)

        return RouteDescriptor(
            name=method.name,
            http_method=HTTP_METHOD_DECORATORS[method_decorator.name],
            route_path=route_path,
            full_path=combine_path_segments([base_path, route_path]),
            description=method.doc.strip() if method.doc and method.doc.strip() else None,
            parameters=tuple(parameters),
            request_body=request_body,
            response_type=self._extract_response(method.return_type),
            guards=merge_unique(class_guards, collect_guards(method.decorators)),
            is_public=any(d.name in PUBLIC_DECORATORS for d in method.decorators),
        )

    # -------------------------------------------------------------------------
    # Parameters & body
    # -------------------------------------------------------------------------

    def _extract_parameters(self, declarations: List[ParameterDeclaration]
                            ) -> Tuple[List[ParameterDescriptor], Optional[ObjectMetadata]]:
        parameters: List[ParameterDescriptor] = []
        request_body: Optional[ObjectMetadata] = None

        for declaration in declarations:
            binding = next((d for d in declaration.decorators if d.name in PARAMETER_BINDINGS), None)
            if binding is None:
                continue

            location = PARAMETER_BINDINGS[binding.name]
            type_ref = declaration.type or DEFAULT_PARAMETER_TYPE

            if location == ParamLocation.BODY:
                body = self._object_metadata(type_ref)
                if body is None:
                    logger.debug(f"Body argument {declaration.name} ({type_ref.display}) is not an object shape")
                elif request_body is None:
                    request_body = body
                continue

            inner, nullable = strip_nullable(type_ref)
            parameters.append(ParameterDescriptor(
                name=binding.args[0] if binding.args and binding.args[0] else declaration.name,
                location=location,
                type=self.resolver.resolve(inner),
                required=location == ParamLocation.PATH or not (declaration.optional or nullable),
                description=binding.kwargs.get('description'),
            ))

        return parameters, request_body

    # -------------------------------------------------------------------------
    # Response
    # -------------------------------------------------------------------------

    def _extract_response(self, return_type: Optional[TypeRef]) -> Optional[ObjectMetadata]:
        if return_type is None:
            return None

        if return_type.name in TypeResolver.ASYNC_WRAPPERS:
            if not return_type.args:
                return None
            return_type = return_type.args[0]

        if return_type.name in VOID_TYPE_NAMES:
            return None
        return self._object_metadata(return_type)

    def _object_metadata(self, type_ref: TypeRef) -> Optional[ObjectMetadata]:
        """
        Object shape behind a type, or None.

        Nullable unions are unwrapped; for a union of several alternatives only
        the first branch that resolves to an object is described.
        """
        inner, _ = strip_nullable(type_ref)
        candidates = inner.args if inner.is_union else [inner]

        for candidate in candidates:
            if candidate.is_null or candidate.name in VOID_TYPE_NAMES:
                continue
            metadata = self._describe(candidate)
            if metadata is not None:
                if inner.is_union:
                    logger.debug(f"Union {inner.display}: describing branch {candidate.display} only")
                return metadata
        return None

    def _describe(self, type_ref: TypeRef) -> Optional[ObjectMetadata]:
        resolved = self.resolver.resolve(type_ref)
        is_array = False
        if resolved.kind == TypeKind.ARRAY and resolved.element_type is not None:
            is_array = True
            resolved = resolved.element_type
            type_ref = type_ref.args[0] if type_ref.args else type_ref

        if resolved.kind != TypeKind.OBJECT:
            return None
        return self.to_object_metadata(resolved, is_array=is_array, is_inline=type_ref.is_inline_object)

    @staticmethod
    def to_object_metadata(resolved: TypeDescriptor, is_array: bool = False, is_inline: bool = False) -> ObjectMetadata:
        return ObjectMetadata(
            name=resolved.name,
            properties=resolved.properties or (),
            is_array=is_array,
            is_inline=is_inline,
        )
