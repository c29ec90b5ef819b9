#!/usr/bin/env python3
"""
Example Generator
=================
Heuristic example values for schema properties.

Primitive leaves resolve in order, first match wins:
1. Declared format (email, uri, uuid, date, date-time, password)
2. Field-name heuristic (email, firstName, phone, ..., isActive)
3. Bare type fallback (string → "example", number → 42, boolean → True)
4. Otherwise None

Arrays yield a single-element list of the element example, enums their first
value, and objects a dict assembled per property. Unions, references and
unresolved types yield None.
"""

from typing import Any, Callable, List, Optional, Tuple

from autodocs.base import PropertyDescriptor, TypeDescriptor, TypeKind

FORMAT_EXAMPLES = {
    'email': 'user@example.com',
    'uri': 'https://example.com',
    'url': 'https://example.com',
    'uuid': '123e4567-e89b-12d3-a456-426614174000',
    'date': '2026-01-19',
    'date-time': '2026-01-19T12:00:00Z',
    'password': 'P@ssw0rd123',
}

TYPE_EXAMPLES = {
    'string': 'example',
    'number': 42,
    'integer': 42,
    'boolean': True,
}

BOOLEAN_PREFIXES = ('is', 'has', 'can')


def _contains(*needles: str) -> Callable[[str], bool]:
    return lambda name: any(needle in name for needle in needles)


# Normalized field name predicate → example, checked in order
NAME_HEURISTICS: List[Tuple[Callable[[str], bool], Any]] = [
    (_contains('email'), 'user@example.com'),
    (_contains('firstname'), 'John'),
    (_contains('lastname'), 'Doe'),
    (_contains('username'), 'johndoe'),
    (_contains('name'), 'Example Name'),
    (_contains('phone', 'mobile'), '+1234567890'),
    (_contains('address'), '123 Main St'),
    (_contains('city'), 'New York'),
    (_contains('country'), 'USA'),
    (_contains('zip', 'postal'), '10001'),
    (_contains('url', 'website'), 'https://example.com'),
    (lambda name: name == 'id' or name.endswith('id'), 1),
    (lambda name: 'date' in name and 'update' not in name, '2026-01-19'),
    (_contains('createdat', 'updatedat'), '2026-01-19T12:00:00Z'),
    (_contains('status'), 'active'),
    (_contains('role'), 'user'),
    (_contains('description', 'desc'), 'Example description'),
    (_contains('title'), 'Example Title'),
    (_contains('price', 'amount'), 99.99),
    (_contains('quantity', 'count'), 10),
    (lambda name: name.startswith(BOOLEAN_PREFIXES), True),
]


def normalize_field_name(name: str) -> str:
    return name.lower().replace('_', '').replace('-', '')


class ExampleGenerator:
    """Deterministic example values; identical input always yields identical output."""

    def example_for(self, prop: PropertyDescriptor) -> Any:
        return self.example_for_type(prop.type, prop.name)

    def example_for_type(self, descriptor: TypeDescriptor, field_name: Optional[str] = None) -> Any:
        if descriptor.kind == TypeKind.ARRAY:
            if descriptor.element_type is None:
                return []
            return [self.example_for_type(descriptor.element_type)]

        if descriptor.kind == TypeKind.ENUM:
            return descriptor.enum_values[0] if descriptor.enum_values else None

        if descriptor.kind == TypeKind.OBJECT:
            return self.example_for_object(descriptor.properties or ())

        if descriptor.kind != TypeKind.PRIMITIVE:
            return None

        if descriptor.format in FORMAT_EXAMPLES:
            return FORMAT_EXAMPLES[descriptor.format]

        if field_name:
            normalized = normalize_field_name(field_name)
            for matches, example in NAME_HEURISTICS:
                if matches(normalized):
                    return example

        return TYPE_EXAMPLES.get(descriptor.name)

    def example_for_object(self, properties) -> dict:
        return {prop.name: self.example_for(prop) for prop in properties}
