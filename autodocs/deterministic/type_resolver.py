#!/usr/bin/env python3
"""
Type Resolver
=============
Turn declared types into finite TypeDescriptor trees.

- string / str → primitive "string"
- EmailStr, UUID, datetime, aliases such as ``Email = str`` → primitive string with a format
- UserDto[] / list[UserDto] → array of the resolved element
- Status (enum) / Literal["a", "b"] → enum with its member values
- A | B → union of member names (members are not expanded)
- Declared classes and inline object literals → object with resolved properties

Self- and mutually-referential graphs terminate: a type whose name is already
being expanded on the current path becomes a non-expanding ``reference`` node,
and anything below the depth bound becomes ``unknown``. Traversal state lives in
a ResolutionContext created per top-level call, never on the resolver.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Tuple

from autodocs.base import PropertyDescriptor, TypeDescriptor, TypeKind
from autodocs.declarations import DeclarationIndex, PropertyDeclaration, TypeRef
from autodocs.deterministic.constraint_mapper import ConstraintMapper

logger = logging.getLogger("autodocs.deterministic.type_resolver")

DEFAULT_MAX_DEPTH = 5

INLINE_TYPE_NAME = "InlineType"


@dataclass(frozen=True)
class ResolutionContext:
    """Recursion depth plus the names currently being expanded on this path."""
    depth: int = 0
    in_progress: FrozenSet[str] = field(default_factory=frozenset)

    def descend(self) -> "ResolutionContext":
        return ResolutionContext(self.depth + 1, self.in_progress)

    def entering(self, name: str) -> "ResolutionContext":
        return ResolutionContext(self.depth, self.in_progress | {name})


class TypeResolver:
    """
    Resolve TypeRefs against a DeclarationIndex.

    The resolver itself holds only configuration and the index, so one
    instance can serve any number of independent (or concurrent) queries.
    """

    # Declared name → (primitive name, format)
    TYPE_MAPPINGS: Dict[str, Tuple[str, Optional[str]]] = {
        # TypeScript primitives
        'string': ('string', None),
        'number': ('number', None),
        'boolean': ('boolean', None),
        'bigint': ('integer', None),

        # Python built-ins
        'str': ('string', None),
        'int': ('integer', None),
        'float': ('number', None),
        'Decimal': ('number', None),
        'bool': ('boolean', None),
        'bytes': ('string', 'binary'),

        # Common aliases
        'String': ('string', None),
        'Number': ('number', None),
        'Boolean': ('boolean', None),
        'Integer': ('integer', None),

        # Dates
        'Date': ('string', 'date-time'),
        'datetime': ('string', 'date-time'),
        'date': ('string', 'date'),
        'time': ('string', 'time'),

        # Nominal string subtypes
        'UUID': ('string', 'uuid'),
        'uuid': ('string', 'uuid'),
        'EmailStr': ('string', 'email'),
        'HttpUrl': ('string', 'uri'),
        'AnyUrl': ('string', 'uri'),
        'SecretStr': ('string', 'password'),
        'UploadFile': ('string', 'binary'),
    }

    ASYNC_WRAPPERS = {"Promise", "Awaitable", "Coroutine", "Observable", "Future"}
    LITERAL_TYPE_NAME = "Literal"

    def __init__(self, index: DeclarationIndex, max_depth: int = DEFAULT_MAX_DEPTH,
                 constraint_mapper: Optional[ConstraintMapper] = None):
        self.index = index
        self.max_depth = max_depth
        self.constraint_mapper = constraint_mapper or ConstraintMapper(enum_lookup=self.enum_values)

    # -------------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------------

    def resolve(self, type_ref: TypeRef, context: Optional[ResolutionContext] = None) -> TypeDescriptor:
        """Resolve a type; a fresh context is created for every top-level call."""
        return self._resolve(type_ref, context or ResolutionContext())

    def resolve_properties(self, declarations: List[PropertyDeclaration],
                           context: Optional[ResolutionContext] = None) -> Tuple[PropertyDescriptor, ...]:
        return self._resolve_properties(declarations, context or ResolutionContext())

    # -------------------------------------------------------------------------
    # Recursion
    # -------------------------------------------------------------------------

    def _resolve(self, type_ref: TypeRef, context: ResolutionContext) -> TypeDescriptor:
        if context.depth > self.max_depth:
            logger.debug(f"Depth bound {self.max_depth} reached at {type_ref.display}")
            return TypeDescriptor(kind=TypeKind.UNKNOWN, name=type_ref.display)

        canonical = self.canonical_name(type_ref)
        if canonical in context.in_progress:
            return self._cycle_reference(type_ref, context)

        if type_ref.is_array:
            element_ref = type_ref.args[0] if type_ref.args else TypeRef(name="unknown")
            element = self._resolve(element_ref, context.descend())
            return TypeDescriptor(
                kind=TypeKind.ARRAY,
                name=type_ref.display,
                is_array=True,
                element_type=element,
            )

        primitive = self._resolve_primitive(type_ref)
        if primitive is not None:
            return primitive

        enum = self._resolve_enum(type_ref)
        if enum is not None:
            return enum

        if type_ref.is_union:
            return TypeDescriptor(
                kind=TypeKind.UNION,
                name=type_ref.display,
                union_members=tuple(member.display for member in type_ref.args),
            )

        if type_ref.is_inline_object:
            return self._resolve_object(INLINE_TYPE_NAME, type_ref.properties or [], context)

        alias = self.index.find_alias(type_ref.name)
        if alias is not None:
            if alias.target.is_inline_object:
                return self._resolve_object(alias.name, alias.target.properties or [], context, canonical)
            return self._resolve(alias.target, context.entering(canonical))

        declaration = self.index.find_class(type_ref.name)
        if declaration is not None:
            return self._resolve_object(declaration.name, declaration.properties, context, canonical)

        logger.debug(f"Unresolved type shape: {type_ref.display}")
        return TypeDescriptor(kind=TypeKind.UNKNOWN, name=type_ref.display)

    def _cycle_reference(self, type_ref: TypeRef, context: ResolutionContext) -> TypeDescriptor:
        """
        Close a cycle on a name that is already being expanded.

        Only declared classes and aliases of inline objects become component
        schemas, so a reference must name one of them. A plain alias is
        followed to the end of its chain and that target is resolved in the
        current context, which yields the reference (or array of references)
        to the underlying class.
        """
        target = type_ref
        seen = set()
        while True:
            alias = self.index.find_alias(target.name)
            if alias is None or alias.target.is_inline_object:
                break
            if alias.name in seen:
                logger.debug(f"Alias loop through {alias.name}, emitting unknown")
                return TypeDescriptor(kind=TypeKind.UNKNOWN, name=type_ref.display)
            seen.add(alias.name)
            target = alias.target

        if target is type_ref:
            canonical = self.canonical_name(type_ref)
            logger.debug(f"Cycle detected on {canonical}, emitting reference")
            return TypeDescriptor(kind=TypeKind.REFERENCE, name=canonical)

        logger.debug(f"Cycle through alias {type_ref.display}, following to {target.display}")
        return self._resolve(target, context)

    def _resolve_object(self, name: str, declarations: List[PropertyDeclaration],
                        context: ResolutionContext, canonical: Optional[str] = None) -> TypeDescriptor:
        # Inline literals have no name to recur through
        inner = context.entering(canonical) if canonical else context
        return TypeDescriptor(
            kind=TypeKind.OBJECT,
            name=name,
            properties=self._resolve_properties(declarations, inner),
        )

    def _resolve_properties(self, declarations: List[PropertyDeclaration],
                            context: ResolutionContext) -> Tuple[PropertyDescriptor, ...]:
        properties = []
        for declaration in declarations:
            properties.append(PropertyDescriptor(
                name=declaration.name,
                type=self._resolve(declaration.type, context.descend()),
                required=not declaration.optional and not declaration.has_default,
                description=declaration.doc.strip() if declaration.doc else None,
                constraints=tuple(self.constraint_mapper.map_all(declaration.decorators)),
            ))
        return tuple(properties)

    # -------------------------------------------------------------------------
    # Classification helpers
    # -------------------------------------------------------------------------

    def _resolve_primitive(self, type_ref: TypeRef) -> Optional[TypeDescriptor]:
        mapping = self.TYPE_MAPPINGS.get(type_ref.name)
        if mapping is not None:
            primitive, fmt = mapping
            if fmt is None and primitive == 'string':
                fmt = self.detect_string_format(type_ref.display)
            return TypeDescriptor(kind=TypeKind.PRIMITIVE, name=primitive, format=fmt)

        # Nominal alias of a primitive: the alias name carries the format hint
        alias = self.index.find_alias(type_ref.name)
        if alias is not None and alias.target.name in self.TYPE_MAPPINGS:
            primitive, fmt = self.TYPE_MAPPINGS[alias.target.name]
            if primitive == 'string':
                fmt = fmt or self.detect_string_format(alias.name)
            return TypeDescriptor(kind=TypeKind.PRIMITIVE, name=primitive, format=fmt)

        return None

    def _resolve_enum(self, type_ref: TypeRef) -> Optional[TypeDescriptor]:
        if type_ref.name == self.LITERAL_TYPE_NAME:
            values = tuple(_literal_value(arg.display) for arg in type_ref.args)
            return TypeDescriptor(kind=TypeKind.ENUM, name=type_ref.display, enum_values=values)

        declaration = self.index.find_enum(type_ref.name)
        if declaration is not None:
            return TypeDescriptor(
                kind=TypeKind.ENUM,
                name=declaration.name,
                enum_values=tuple(declaration.values),
            )
        return None

    def enum_values(self, name: str) -> Optional[Tuple]:
        declaration = self.index.find_enum(name.split(".")[-1])
        return tuple(declaration.values) if declaration is not None else None

    @staticmethod
    def detect_string_format(type_name: str) -> Optional[str]:
        """Format hint from a nominal string type name."""
        lower = type_name.lower()
        if 'email' in lower:
            return 'email'
        if 'url' in lower or 'uri' in lower:
            return 'uri'
        if 'uuid' in lower or 'guid' in lower:
            return 'uuid'
        if 'date' in lower:
            return 'date-time'
        return None

    @staticmethod
    def canonical_name(type_ref: TypeRef) -> str:
        if re.match(r"^\w+$", type_ref.name):
            return type_ref.name
        return re.sub(r'\s+', ' ', type_ref.display).strip()


def _literal_value(text: str):
    """Literal argument text → str or number."""
    stripped = text.strip()
    if len(stripped) >= 2 and stripped[0] == stripped[-1] and stripped[0] in "'\"":
        return stripped[1:-1]
    try:
        return int(stripped)
    except ValueError:
        pass
    try:
        return float(stripped)
    except ValueError:
        return stripped
