"""
Declaration graph handed to the core by a source-parsing collaborator.

A SourceUnit is one parsed file. It exposes its classes (with decorators,
methods, properties and doc text), enums and type aliases. The core never
reads raw source text. Front-ends (see autodocs.frontends) or a serialized
JSON/YAML graph produce these objects.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

import yaml

logger = logging.getLogger("autodocs.declarations")

# Decorator names that classify a class declaration
SERVICE_DECORATORS = {"Controller"}
SERVICE_GROUP_DECORATORS = {"Module"}

ARRAY_TYPE_NAMES = {"Array", "ReadonlyArray", "array", "list", "List", "Sequence", "set", "Set", "FrozenSet", "tuple", "Tuple", "Iterable"}
UNION_TYPE_NAME = "Union"
OPTIONAL_TYPE_NAME = "Optional"
NULL_TYPE_NAMES = {"None", "null", "undefined", "NoneType"}


class DeclarationKind(Enum):
    SERVICE = "service"
    SERVICE_GROUP = "service_group"
    UNRECOGNIZED = "unrecognized"


# =============================================================================
# TYPE REFERENCES
# =============================================================================

@dataclass
class TypeRef:
    """
    A declared type as written in source.

    ``name`` is the canonical head of the type: a primitive name, a class or
    enum name, ``Array``/``list`` for sequences, ``Union`` for alternatives,
    ``Promise``/``Awaitable`` for deferred values, or ``{}`` for inline object
    literals (whose members are in ``properties``).
    """
    name: str
    args: List[TypeRef] = field(default_factory=list)
    properties: Optional[List[PropertyDeclaration]] = None
    text: str = ""

    @property
    def display(self) -> str:
        return self.text or self.name

    @property
    def is_union(self) -> bool:
        return self.name == UNION_TYPE_NAME

    @property
    def is_null(self) -> bool:
        return self.name in NULL_TYPE_NAMES

    @property
    def is_inline_object(self) -> bool:
        return self.properties is not None

    @property
    def is_array(self) -> bool:
        return self.name in ARRAY_TYPE_NAMES

    @classmethod
    def parse(cls, text: str) -> TypeRef:
        """
        Parse a textual type into a TypeRef.

        Understands TypeScript-ish and Python-ish spellings:
        ``UserDto[]``, ``Promise<UserDto>``, ``list[UserDto]``,
        ``Optional[str]``, ``string | undefined``.
        """
        text = (text or "").strip()
        if not text:
            return cls(name="unknown", text="")

        members = split_top_level(text, "|")
        if len(members) > 1:
            return cls(name=UNION_TYPE_NAME, args=[cls.parse(m) for m in members], text=text)

        if text.endswith("[]"):
            return cls(name="Array", args=[cls.parse(text[:-2])], text=text)

        if text.startswith("(") and text.endswith(")"):
            return cls.parse(text[1:-1])

        match = re.match(r'^([\w.]+)\s*[<\[](.*)[>\]]$', text, re.DOTALL)
        if match:
            head = match.group(1).split(".")[-1]
            args = [cls.parse(a) for a in split_top_level(match.group(2), ",")]
            if head == OPTIONAL_TYPE_NAME:
                return cls(name=UNION_TYPE_NAME, args=args + [cls(name="None", text="None")], text=text)
            return cls(name=head, args=args, text=text)

        return cls(name=text.split(".")[-1] if re.match(r'^[\w.]+$', text) else text, text=text)

    @classmethod
    def from_dict(cls, data: Union[str, Dict[str, Any]]) -> TypeRef:
        if isinstance(data, str):
            return cls.parse(data)
        properties = data.get("properties")
        return cls(
            name=data.get("name", "unknown"),
            args=[cls.from_dict(a) for a in data.get("args", [])],
            properties=[PropertyDeclaration.from_dict(p) for p in properties] if properties is not None else None,
            text=data.get("text", ""),
        )


def split_top_level(text: str, separator: str) -> List[str]:
    """Split on a separator that is not nested in brackets, braces or quotes."""
    parts: List[str] = []
    depth = 0
    quote: Optional[str] = None
    current = []
    for ch in text:
        if quote:
            current.append(ch)
            if ch == quote:
                quote = None
            continue
        if ch in "'\"":
            quote = ch
        elif ch in "<[({":
            depth += 1
        elif ch in ">])}":
            depth -= 1
        elif ch == separator and depth == 0:
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(ch)
    tail = "".join(current).strip()
    if tail:
        parts.append(tail)
    return [p for p in parts if p]


# =============================================================================
# DECLARATIONS
# =============================================================================

@dataclass
class Decorator:
    """
    A decorator/annotation with its arguments.

    Positional ``args`` hold literal values as plain text (string literals
    unquoted) and any other expression as its source text.
    """
    name: str
    args: List[str] = field(default_factory=list)
    kwargs: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Union[str, Dict[str, Any]]) -> Decorator:
        if isinstance(data, str):
            return cls(name=data)
        return cls(
            name=data["name"],
            args=[str(a) for a in data.get("args", [])],
            kwargs={k: str(v) for k, v in data.get("kwargs", {}).items()},
        )


@dataclass
class PropertyDeclaration:
    name: str
    type: TypeRef
    optional: bool = False
    has_default: bool = False
    decorators: List[Decorator] = field(default_factory=list)
    doc: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> PropertyDeclaration:
        return cls(
            name=data["name"],
            type=TypeRef.from_dict(data.get("type", "unknown")),
            optional=bool(data.get("optional", False)),
            has_default=bool(data.get("has_default", False)),
            decorators=[Decorator.from_dict(d) for d in data.get("decorators", [])],
            doc=data.get("doc"),
        )


@dataclass
class ParameterDeclaration:
    name: str
    type: Optional[TypeRef] = None
    optional: bool = False
    decorators: List[Decorator] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ParameterDeclaration:
        type_data = data.get("type")
        return cls(
            name=data["name"],
            type=TypeRef.from_dict(type_data) if type_data is not None else None,
            optional=bool(data.get("optional", False)),
            decorators=[Decorator.from_dict(d) for d in data.get("decorators", [])],
        )


@dataclass
class MethodDeclaration:
    name: str
    decorators: List[Decorator] = field(default_factory=list)
    parameters: List[ParameterDeclaration] = field(default_factory=list)
    return_type: Optional[TypeRef] = None
    doc: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> MethodDeclaration:
        return_type = data.get("return_type")
        return cls(
            name=data["name"],
            decorators=[Decorator.from_dict(d) for d in data.get("decorators", [])],
            parameters=[ParameterDeclaration.from_dict(p) for p in data.get("parameters", [])],
            return_type=TypeRef.from_dict(return_type) if return_type is not None else None,
            doc=data.get("doc"),
        )


@dataclass
class ClassDeclaration:
    name: str
    decorators: List[Decorator] = field(default_factory=list)
    properties: List[PropertyDeclaration] = field(default_factory=list)
    methods: List[MethodDeclaration] = field(default_factory=list)
    doc: Optional[str] = None

    def find_decorator(self, names: Iterable[str]) -> Optional[Decorator]:
        wanted = set(names)
        for decorator in self.decorators:
            if decorator.name in wanted:
                return decorator
        return None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ClassDeclaration:
        return cls(
            name=data["name"],
            decorators=[Decorator.from_dict(d) for d in data.get("decorators", [])],
            properties=[PropertyDeclaration.from_dict(p) for p in data.get("properties", [])],
            methods=[MethodDeclaration.from_dict(m) for m in data.get("methods", [])],
            doc=data.get("doc"),
        )


@dataclass
class EnumDeclaration:
    name: str
    members: List[Tuple[str, Union[str, int, float]]] = field(default_factory=list)

    @property
    def values(self) -> List[Union[str, int, float]]:
        return [value for _, value in self.members]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> EnumDeclaration:
        members = data.get("members", [])
        if isinstance(members, dict):
            pairs = list(members.items())
        else:
            pairs = [(m, m) if not isinstance(m, (list, tuple)) else (m[0], m[1]) for m in members]
        return cls(name=data["name"], members=pairs)


@dataclass
class TypeAlias:
    name: str
    target: TypeRef

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> TypeAlias:
        return cls(name=data["name"], target=TypeRef.from_dict(data["target"]))


@dataclass
class SourceUnit:
    """One parsed source file."""
    path: str
    classes: List[ClassDeclaration] = field(default_factory=list)
    enums: List[EnumDeclaration] = field(default_factory=list)
    aliases: List[TypeAlias] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> SourceUnit:
        return cls(
            path=data["path"],
            classes=[ClassDeclaration.from_dict(c) for c in data.get("classes", [])],
            enums=[EnumDeclaration.from_dict(e) for e in data.get("enums", [])],
            aliases=[TypeAlias.from_dict(a) for a in data.get("aliases", [])],
        )


# =============================================================================
# CLASSIFICATION & INDEXING
# =============================================================================

def classify_declaration(declaration: ClassDeclaration) -> DeclarationKind:
    """Resolve a class declaration to exactly one closed variant."""
    if declaration.find_decorator(SERVICE_DECORATORS):
        return DeclarationKind.SERVICE
    if declaration.find_decorator(SERVICE_GROUP_DECORATORS):
        return DeclarationKind.SERVICE_GROUP
    return DeclarationKind.UNRECOGNIZED


class DeclarationIndex:
    """Name lookup across all source units; the first declaration of a name wins."""

    def __init__(self, units: Iterable[SourceUnit]):
        self.classes: Dict[str, ClassDeclaration] = {}
        self.enums: Dict[str, EnumDeclaration] = {}
        self.aliases: Dict[str, TypeAlias] = {}
        self.locations: Dict[str, str] = {}

        for unit in units:
            for cls in unit.classes:
                if cls.name not in self.classes:
                    self.classes[cls.name] = cls
                    self.locations[cls.name] = unit.path
            for enum in unit.enums:
                self.enums.setdefault(enum.name, enum)
            for alias in unit.aliases:
                self.aliases.setdefault(alias.name, alias)

    def find_class(self, name: str) -> Optional[ClassDeclaration]:
        return self.classes.get(name)

    def find_enum(self, name: str) -> Optional[EnumDeclaration]:
        return self.enums.get(name)

    def find_alias(self, name: str) -> Optional[TypeAlias]:
        return self.aliases.get(name)


def iter_classified(units: Iterable[SourceUnit]) -> Iterable[Tuple[SourceUnit, ClassDeclaration, DeclarationKind]]:
    """Yield every class with its classification, in unit and declaration order."""
    for unit in units:
        for cls in unit.classes:
            yield unit, cls, classify_declaration(cls)


# =============================================================================
# SERIALIZED GRAPH LOADING
# =============================================================================

def load_source_units(path: Union[str, Path]) -> List[SourceUnit]:
    """
    Load a serialized declaration graph.

    Accepts JSON or YAML holding either a list of units or
    ``{"units": [...]}``.
    """
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        if path.suffix.lower() in (".yaml", ".yml"):
            data = yaml.safe_load(f)
        else:
            data = json.load(f)

    if isinstance(data, dict):
        data = data.get("units", [])

    units = [SourceUnit.from_dict(u) for u in data or []]
    logger.info(f"Loaded {len(units)} source units from {path}")
    return units
