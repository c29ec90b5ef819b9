#!/usr/bin/env python3
"""
Constraint Mapper
=================
Map declarative validation annotations to OpenAPI schema constraints.

- @IsEmail()        → {"format": "email"}
- @MinLength(3)     → {"minLength": 3}
- @Length(2, 20)    → {"minLength": 2, "maxLength": 20}
- @Matches(/^a+$/)  → {"pattern": "^a+$"}
- @IsOptional()     → {"required": False}

The mapping lives entirely in CONSTRAINT_RULES. Callers never branch on an
annotation's name, so supporting a new annotation is a one-line table entry.
Unknown annotations that follow the ``Is*`` / ``Validate*`` convention are kept
with empty constraints; anything else is ignored.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from autodocs.base import ConstraintDescriptor

logger = logging.getLogger("autodocs.deterministic.constraint_mapper")

RECOGNIZED_PREFIXES = ("Is", "Validate")

NUMBER_PATTERN = re.compile(r'^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$')
REGEX_LITERAL_PATTERN = re.compile(r'^/(.*)/[a-z]*$', re.DOTALL)


class RuleKind(Enum):
    FIXED = "fixed"          # constant constraints, arguments ignored
    ARGUMENTS = "arguments"  # positional args parsed into the listed keys
    PATTERN = "pattern"      # first arg is a regex, delimiters stripped
    ENUM = "enum"            # args become the enum value list
    ENUM_TYPE = "enum_type"  # first arg names an enum declaration


@dataclass(frozen=True)
class ConstraintRule:
    kind: RuleKind
    fixed: Tuple[Tuple[str, Any], ...] = ()
    keys: Tuple[str, ...] = ()


def fixed(**constraints: Any) -> ConstraintRule:
    return ConstraintRule(RuleKind.FIXED, fixed=tuple(constraints.items()))


def arguments(*keys: str, **constraints: Any) -> ConstraintRule:
    return ConstraintRule(RuleKind.ARGUMENTS, fixed=tuple(constraints.items()), keys=keys)


# Annotation name → construction rule
CONSTRAINT_RULES: Dict[str, ConstraintRule] = {
    # Strings
    'IsString': fixed(type='string'),
    'IsEmail': fixed(format='email'),
    'IsUrl': fixed(format='uri'),
    'IsURL': fixed(format='uri'),
    'IsUUID': fixed(format='uuid'),
    'IsAlphanumeric': fixed(pattern='^[a-zA-Z0-9]+$'),
    'MinLength': arguments('minLength'),
    'MaxLength': arguments('maxLength'),
    'Length': arguments('minLength', 'maxLength'),
    'Matches': ConstraintRule(RuleKind.PATTERN),

    # Numbers
    'IsNumber': fixed(type='number'),
    'IsInt': fixed(type='integer'),
    'IsDecimal': fixed(type='number'),
    'IsPositive': fixed(minimum=0, exclusiveMinimum=True),
    'IsNegative': fixed(maximum=0, exclusiveMaximum=True),
    'Min': arguments('minimum'),
    'Max': arguments('maximum'),

    # Booleans
    'IsBoolean': fixed(type='boolean'),

    # Dates
    'IsDate': fixed(format='date-time'),
    'IsDateString': fixed(format='date-time'),

    # Enums
    'IsEnum': ConstraintRule(RuleKind.ENUM_TYPE),
    'IsIn': ConstraintRule(RuleKind.ENUM),

    # Arrays
    'IsArray': fixed(type='array'),
    'ArrayNotEmpty': fixed(minItems=1),
    'ArrayMinSize': arguments('minItems'),
    'ArrayMaxSize': arguments('maxItems'),

    # Presence
    'IsOptional': fixed(required=False),
    'IsNotEmpty': fixed(required=True),

    # Objects
    'IsObject': fixed(type='object'),
}


def parse_argument(text: Optional[str]) -> Any:
    """Numeric-looking text becomes a number; anything else stays literal text."""
    if text is None:
        return None
    stripped = str(text).strip()
    if not stripped:
        return None
    if NUMBER_PATTERN.match(stripped):
        number = float(stripped)
        return int(number) if number.is_integer() and 'e' not in stripped.lower() and '.' not in stripped else number
    return stripped


def strip_pattern_delimiters(text: str) -> str:
    """``/^a+$/i`` → ``^a+$``; undelimited patterns pass through."""
    match = REGEX_LITERAL_PATTERN.match(text.strip())
    return match.group(1) if match else text.strip()


class ConstraintMapper:
    """Table-driven annotation → ConstraintDescriptor mapping."""

    def __init__(self, rules: Optional[Dict[str, ConstraintRule]] = None,
                 enum_lookup: Optional[Callable[[str], Optional[Sequence[Any]]]] = None):
        self.rules = rules if rules is not None else CONSTRAINT_RULES
        self.enum_lookup = enum_lookup

    def map_annotation(self, name: str, args: Sequence[str] = ()) -> Optional[ConstraintDescriptor]:
        rule = self.rules.get(name)
        if rule is None:
            if name.startswith(RECOGNIZED_PREFIXES):
                return ConstraintDescriptor(kind=name, args=tuple(args))
            logger.debug(f"Ignoring unrecognized annotation @{name}")
            return None

        parsed_args, constraints = self._apply(rule, list(args))
        return ConstraintDescriptor(kind=name, args=parsed_args, constraints=tuple(constraints.items()))

    def map_all(self, decorators: Iterable[Any]) -> List[ConstraintDescriptor]:
        """Map every decorator-like object (``.name`` / ``.args``), dropping unrecognized ones."""
        descriptors = []
        for decorator in decorators:
            descriptor = self.map_annotation(decorator.name, decorator.args)
            if descriptor is not None:
                descriptors.append(descriptor)
        return descriptors

    def _apply(self, rule: ConstraintRule, args: List[str]) -> Tuple[Tuple[Any, ...], Dict[str, Any]]:
        constraints: Dict[str, Any] = dict(rule.fixed)

        if rule.kind == RuleKind.FIXED:
            return (), constraints

        if rule.kind == RuleKind.ARGUMENTS:
            parsed = tuple(parse_argument(args[i]) if i < len(args) else None for i in range(len(rule.keys)))
            for key, value in zip(rule.keys, parsed):
                if value is not None:
                    constraints[key] = value
            return parsed, constraints

        if rule.kind == RuleKind.PATTERN:
            if not args:
                return (), constraints
            constraints['pattern'] = strip_pattern_delimiters(args[0])
            return (args[0],), constraints

        if rule.kind == RuleKind.ENUM_TYPE:
            if not args:
                return (), constraints
            values = self.enum_lookup(args[0].strip()) if self.enum_lookup else None
            if values:
                constraints['enum'] = list(values)
            return (args[0],), constraints

        # RuleKind.ENUM
        if args:
            constraints['enum'] = [parse_argument(a) for a in args]
        return tuple(args), constraints


def merge_constraints(descriptors: Iterable[ConstraintDescriptor]) -> Dict[str, Any]:
    """Fold descriptors into one keyword map; later annotations win."""
    merged: Dict[str, Any] = {}
    for descriptor in descriptors:
        merged.update(descriptor.constraint_map)
    return merged
