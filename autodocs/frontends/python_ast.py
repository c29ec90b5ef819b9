#!/usr/bin/env python3
"""
Python Source Parser
====================
Build SourceUnits from decorated Python classes using AST (no code execution).

Recognized shapes:
- @Controller("users") classes with @Get(":id") / @Post() ... handlers
- @Module(controllers=[UsersController], imports=[AuthModule.forRoot()]) classes
- Handler bindings as defaults: ``id: str = Param("id")``, ``dto: CreateUserDto = Body()``
  or as Annotated metadata: ``page: Annotated[int, Query("page")]``
- Validation annotations: ``email: Annotated[str, IsEmail(), MinLength(3)]``
  and pydantic-style ``Field(min_length=3, le=10)`` defaults
- Enum subclasses, module-level aliases (``Email = str``) and docstrings

Files that fail to read or parse are logged and skipped.
"""

import ast
import fnmatch
import logging
import os
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple, Union

from autodocs.declarations import (
    ClassDeclaration,
    Decorator,
    EnumDeclaration,
    MethodDeclaration,
    ParameterDeclaration,
    PropertyDeclaration,
    SourceUnit,
    TypeAlias,
    TypeRef,
)
from autodocs.deterministic.route_extractor import PARAMETER_BINDINGS, strip_nullable

logger = logging.getLogger("autodocs.frontends.python_ast")

DEFAULT_IGNORE_DIRS: Set[str] = {
    # Version control
    ".git", ".svn", ".hg",
    # Python
    "__pycache__", ".pytest_cache", ".mypy_cache", ".tox", ".nox",
    "venv", ".venv", "env", ".env", "virtualenv", ".virtualenv",
    "site-packages", ".eggs", "dist", "build", "egg-info",
    # JavaScript
    "node_modules", ".next", "coverage", ".cache",
    # IDE/OS
    ".vscode", ".idea", ".DS_Store",
}

ENUM_BASES = {"Enum", "IntEnum", "StrEnum", "Flag", "IntFlag"}
ANNOTATED_NAME = "Annotated"
LITERAL_NAME = "Literal"
FIELD_CALL_NAME = "Field"

# pydantic Field keyword → validation annotation
FIELD_KEYWORD_ANNOTATIONS = {
    "min_length": "MinLength",
    "max_length": "MaxLength",
    "pattern": "Matches",
    "regex": "Matches",
    "ge": "Min",
    "le": "Max",
    "min_items": "ArrayMinSize",
    "max_items": "ArrayMaxSize",
}


# =============================================================================
# AST HELPERS
# =============================================================================

def call_name(node: ast.expr) -> Optional[str]:
    """``Get`` for ``Get(...)``, ``Get``, ``nest.Get`` or ``nest.Get(...)``."""
    if isinstance(node, ast.Call):
        node = node.func
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        return node.attr
    return None


def argument_text(node: ast.expr) -> str:
    """String literals unquoted, other literals as text, expressions as source."""
    if isinstance(node, ast.Constant):
        return node.value if isinstance(node.value, str) else str(node.value)
    return ast.unparse(node)


def to_decorator(node: ast.expr) -> Optional[Decorator]:
    name = call_name(node)
    if name is None:
        return None
    if not isinstance(node, ast.Call):
        return Decorator(name=name)

    args: List[str] = []
    for arg in node.args:
        # IsIn(["a", "b"]) carries its choices as separate arguments
        if isinstance(arg, (ast.List, ast.Tuple)) and all(isinstance(e, ast.Constant) for e in arg.elts):
            args.extend(argument_text(e) for e in arg.elts)
        else:
            args.append(argument_text(arg))
    kwargs = {kw.arg: argument_text(kw.value) for kw in node.keywords if kw.arg}
    return Decorator(name=name, args=args, kwargs=kwargs)


def annotation_text(node: Optional[ast.expr], literal: bool = False) -> str:
    """
    Render an annotation as a type string for TypeRef.parse.

    Forward references (``"Node"``) are unquoted; Literal members keep their
    quotes so they stay distinguishable from type names.
    """
    if node is None:
        return ""
    if isinstance(node, ast.Constant):
        if node.value is None:
            return "None"
        if isinstance(node.value, str) and not literal:
            return node.value
        return repr(node.value)
    if isinstance(node, ast.Subscript):
        head = annotation_text(node.value)
        is_literal = head.split(".")[-1] == LITERAL_NAME
        elements = node.slice.elts if isinstance(node.slice, ast.Tuple) else [node.slice]
        inner = ", ".join(annotation_text(e, literal=is_literal) for e in elements)
        return f"{head}[{inner}]"
    if isinstance(node, ast.BinOp) and isinstance(node.op, ast.BitOr):
        return f"{annotation_text(node.left)} | {annotation_text(node.right)}"
    if isinstance(node, (ast.List, ast.Tuple)):
        return ", ".join(annotation_text(e, literal=literal) for e in node.elts)
    return ast.unparse(node)


def split_annotated(node: Optional[ast.expr]) -> Tuple[Optional[ast.expr], List[ast.expr]]:
    """``Annotated[T, m1, m2]`` → (T, [m1, m2]); other annotations pass through."""
    if isinstance(node, ast.Subscript) and call_name(node.value) == ANNOTATED_NAME \
            and isinstance(node.slice, ast.Tuple) and node.slice.elts:
        return node.slice.elts[0], list(node.slice.elts[1:])
    return node, []


def is_nullable(type_ref: TypeRef) -> bool:
    """``Optional[T]``, ``Union[T, None]`` and ``T | None``."""
    return type_ref.is_union and any(member.is_null for member in type_ref.args)


def docstring_of(node: ast.AST) -> Optional[str]:
    doc = ast.get_docstring(node, clean=True)
    return doc.strip() if doc else None


# =============================================================================
# PARSER
# =============================================================================

class PythonSourceParser:
    """
    Parse Python modules into SourceUnits.

    Paths recorded on each unit are relative to the scanned root (POSIX style),
    so version tags and category segments come from the project layout.
    """

    def __init__(self, exclude: Sequence[str] = (), ignore_dirs: Optional[Iterable[str]] = None):
        self.exclude = list(exclude)
        self.ignore_dirs = set(ignore_dirs) if ignore_dirs is not None else set(DEFAULT_IGNORE_DIRS)
        self.stats = {"files_parsed": 0, "files_skipped": 0, "files_errored": 0}

    # -------------------------------------------------------------------------
    # Files
    # -------------------------------------------------------------------------

    def is_excluded(self, relative_path: str) -> bool:
        name = relative_path.rsplit("/", 1)[-1]
        for pattern in self.exclude:
            # "**/x" also matches x at the root
            candidates = [pattern, pattern[3:]] if pattern.startswith("**/") else [pattern]
            if any(fnmatch.fnmatch(relative_path, p) or fnmatch.fnmatch(name, p) for p in candidates):
                return True
        return False

    def collect_files(self, root: Union[str, Path]) -> List[Path]:
        """Collect all Python files below root, honouring ignore dirs and exclude globs."""
        root = Path(root)
        if root.is_file():
            return [root] if root.suffix == ".py" else []

        collected = []
        for current, dirs, files in os.walk(root):
            # Modify dirs in-place to skip ignored directories
            dirs[:] = sorted(d for d in dirs if d not in self.ignore_dirs and not d.endswith(".egg-info"))
            for filename in sorted(files):
                fp = Path(current) / filename
                relative = fp.relative_to(root).as_posix()
                if fp.suffix != ".py" or self.is_excluded(relative):
                    self.stats["files_skipped"] += 1
                    continue
                collected.append(fp)
        return collected

    def parse_tree(self, root: Union[str, Path]) -> List[SourceUnit]:
        root = Path(root)
        units = []
        for fp in self.collect_files(root):
            location = fp.name if root.is_file() else fp.relative_to(root).as_posix()
            unit = self.parse_file(fp, location)
            if unit is not None:
                units.append(unit)
        logger.info(
            f"Parsed {self.stats['files_parsed']} files from {root} "
            f"({self.stats['files_skipped']} skipped, {self.stats['files_errored']} errored)"
        )
        return units

    def parse_file(self, file_path: Union[str, Path], location: Optional[str] = None) -> Optional[SourceUnit]:
        """Parse one file with error isolation; returns None when it cannot be read or parsed."""
        file_path = Path(file_path)
        try:
            source = file_path.read_text(encoding="utf-8")
            unit = self.parse_source(source, location or file_path.as_posix())
        except (OSError, UnicodeDecodeError, SyntaxError, ValueError) as e:
            logger.warning(f"Skipping {file_path}: {e}")
            self.stats["files_errored"] += 1
            return None
        self.stats["files_parsed"] += 1
        return unit

    # -------------------------------------------------------------------------
    # Modules
    # -------------------------------------------------------------------------

    def parse_source(self, source: str, path: str = "<source>") -> SourceUnit:
        """Parse module source; raises SyntaxError for invalid Python."""
        tree = ast.parse(source, filename=path)
        unit = SourceUnit(path=path)

        for node in tree.body:
            if isinstance(node, ast.ClassDef):
                if self._is_enum(node):
                    unit.enums.append(self._parse_enum(node))
                else:
                    unit.classes.append(self._parse_class(node))
            else:
                alias = self._parse_alias(node)
                if alias is not None:
                    unit.aliases.append(alias)

        logger.debug(
            f"{path}: {len(unit.classes)} classes, {len(unit.enums)} enums, {len(unit.aliases)} aliases"
        )
        return unit

    @staticmethod
    def _is_enum(node: ast.ClassDef) -> bool:
        return any(call_name(base) in ENUM_BASES for base in node.bases)

    @staticmethod
    def _parse_enum(node: ast.ClassDef) -> EnumDeclaration:
        members = []
        for statement in node.body:
            if isinstance(statement, ast.Assign) and len(statement.targets) == 1 \
                    and isinstance(statement.targets[0], ast.Name):
                name = statement.targets[0].id
                value = statement.value
                if isinstance(value, ast.Constant) and isinstance(value.value, (str, int, float)):
                    members.append((name, value.value))
                else:
                    # auto() and computed values fall back to the member name
                    members.append((name, name))
        return EnumDeclaration(name=node.name, members=members)

    @staticmethod
    def _parse_alias(node: ast.stmt) -> Optional[TypeAlias]:
        type_alias_node = getattr(ast, "TypeAlias", None)
        if type_alias_node is not None and isinstance(node, type_alias_node):
            return TypeAlias(name=node.name.id, target=TypeRef.parse(annotation_text(node.value)))

        if isinstance(node, ast.AnnAssign) and isinstance(node.target, ast.Name) \
                and call_name(node.annotation) == "TypeAlias" and node.value is not None:
            return TypeAlias(name=node.target.id, target=TypeRef.parse(annotation_text(node.value)))

        if isinstance(node, ast.Assign) and len(node.targets) == 1 and isinstance(node.targets[0], ast.Name):
            name = node.targets[0].id
            if name[:1].isupper() and not name.isupper() and \
                    isinstance(node.value, (ast.Name, ast.Attribute, ast.Subscript, ast.BinOp)):
                return TypeAlias(name=name, target=TypeRef.parse(annotation_text(node.value)))
        return None

    # -------------------------------------------------------------------------
    # Classes
    # -------------------------------------------------------------------------

    def _parse_class(self, node: ast.ClassDef) -> ClassDeclaration:
        declaration = ClassDeclaration(
            name=node.name,
            decorators=[d for d in (to_decorator(n) for n in node.decorator_list) if d is not None],
            doc=docstring_of(node),
        )

        body = node.body
        for i, statement in enumerate(body):
            if isinstance(statement, ast.AnnAssign) and isinstance(statement.target, ast.Name):
                following = body[i + 1] if i + 1 < len(body) else None
                declaration.properties.append(self._parse_property(statement, following))
            elif isinstance(statement, (ast.FunctionDef, ast.AsyncFunctionDef)):
                declaration.methods.append(self._parse_method(statement))
        return declaration

    def _parse_property(self, node: ast.AnnAssign, following: Optional[ast.stmt]) -> PropertyDeclaration:
        annotation, metadata = split_annotated(node.annotation)
        type_text = annotation_text(annotation)
        decorators = [d for d in (to_decorator(m) for m in metadata) if d is not None]
        has_default = node.value is not None
        doc = None

        if isinstance(node.value, ast.Call) and call_name(node.value) == FIELD_CALL_NAME:
            field_decorators, has_default, doc = self._parse_field_call(node.value)
            decorators.extend(field_decorators)

        # Attribute docstring: a bare string right after the annotated assignment
        if isinstance(following, ast.Expr) and isinstance(following.value, ast.Constant) \
                and isinstance(following.value.value, str):
            doc = following.value.value.strip()

        # Optional[T] fields are optional T
        type_ref, nullable = strip_nullable(TypeRef.parse(type_text))
        return PropertyDeclaration(
            name=node.target.id,
            type=type_ref,
            optional=nullable,
            has_default=has_default,
            decorators=decorators,
            doc=doc,
        )

    @staticmethod
    def _parse_field_call(call: ast.Call) -> Tuple[List[Decorator], bool, Optional[str]]:
        decorators = []
        description = None
        has_default = False

        if call.args:
            first = call.args[0]
            has_default = not (isinstance(first, ast.Constant) and first.value is Ellipsis)

        for keyword in call.keywords:
            if keyword.arg in ("default", "default_factory"):
                has_default = not (isinstance(keyword.value, ast.Constant) and keyword.value.value is Ellipsis)
            elif keyword.arg == "description":
                description = argument_text(keyword.value)
            elif keyword.arg in FIELD_KEYWORD_ANNOTATIONS:
                decorators.append(Decorator(
                    name=FIELD_KEYWORD_ANNOTATIONS[keyword.arg],
                    args=[argument_text(keyword.value)],
                ))
        return decorators, has_default, description

    # -------------------------------------------------------------------------
    # Methods
    # -------------------------------------------------------------------------

    def _parse_method(self, node: Union[ast.FunctionDef, ast.AsyncFunctionDef]) -> MethodDeclaration:
        return_type = None
        if node.returns is not None:
            return_type = TypeRef.parse(annotation_text(node.returns))

        return MethodDeclaration(
            name=node.name,
            decorators=[d for d in (to_decorator(n) for n in node.decorator_list) if d is not None],
            parameters=self._parse_parameters(node.args),
            return_type=return_type,
            doc=docstring_of(node),
        )

    def _parse_parameters(self, arguments: ast.arguments) -> List[ParameterDeclaration]:
        positional = list(arguments.posonlyargs) + list(arguments.args)
        defaults: Dict[str, ast.expr] = {}
        for arg, default in zip(positional[len(positional) - len(arguments.defaults):], arguments.defaults):
            defaults[arg.arg] = default
        for arg, default in zip(arguments.kwonlyargs, arguments.kw_defaults):
            if default is not None:
                defaults[arg.arg] = default

        parameters = []
        for arg in positional + list(arguments.kwonlyargs):
            if arg.arg in ("self", "cls"):
                continue
            annotation, metadata = split_annotated(arg.annotation)
            type_text = annotation_text(annotation)
            decorators = [d for d in (to_decorator(m) for m in metadata) if d is not None]

            default = defaults.get(arg.arg)
            if default is not None and call_name(default) in PARAMETER_BINDINGS:
                binding = to_decorator(default)
                if binding is not None:
                    decorators.append(binding)

            type_ref = TypeRef.parse(type_text) if type_text else None
            parameters.append(ParameterDeclaration(
                name=arg.arg,
                type=type_ref,
                optional=type_ref is not None and is_nullable(type_ref),
                decorators=decorators,
            ))
        return parameters
