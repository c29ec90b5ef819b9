#!/usr/bin/env python3
"""
Category / Version Resolver
===========================
Attach a display category and an API version to each service.

Category strategies, tried in order:
1. Group-based: the first service group listing the service
   (AdminAuthModule → "Admin Auth")
2. Path-based: inferred from the source location
   (src/api/v1/admin/auth/auth.controller.ts → "Admin - Auth")
3. "Uncategorized"

Version is always the first ``v<digits>`` segment of the source location.
"""

import logging
import re
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from autodocs.base import ServiceGroupDescriptor
from autodocs.declarations import (
    ClassDeclaration,
    DeclarationKind,
    SERVICE_GROUP_DECORATORS,
    SourceUnit,
    iter_classified,
    split_top_level,
)
from autodocs.deterministic.path_utils import UNCATEGORIZED, derive_category_from_path, match_first_version_tag

logger = logging.getLogger("autodocs.deterministic.category_resolver")

GROUP_NAME_SUFFIXES = ("Module", "Group")
CAMEL_BOUNDARY = re.compile(r'(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])')
COMMENT_PATTERN = re.compile(r'/\*.*?\*/|//[^\n]*|#[^\n]*', re.DOTALL)
CALL_HEAD_PATTERN = re.compile(r'^([\w.]+?)\.(?:forRoot|forRootAsync|forFeature|forFeatureAsync|register|registerAsync)\b')

GROUP_MEMBER_KEY = "controllers"
GROUP_IMPORT_KEY = "imports"


# =============================================================================
# GROUP DECLARATION PARSING
# =============================================================================

def parse_name_list(text: Optional[str]) -> List[str]:
    """
    ``[AdminController, /* legacy */ AuthModule.forRoot({...})]`` →
    ``["AdminController", "AuthModule"]``
    """
    if not text:
        return []
    body = COMMENT_PATTERN.sub("", text).strip()
    if body.startswith("[") and body.endswith("]"):
        body = body[1:-1]

    names = []
    for item in split_top_level(body, ","):
        item = item.strip()
        match = CALL_HEAD_PATTERN.match(item)
        if match:
            item = match.group(1)
        if item:
            names.append(item)
    return names


def _group_list_text(declaration: ClassDeclaration, key: str) -> Optional[str]:
    decorator = declaration.find_decorator(SERVICE_GROUP_DECORATORS)
    if decorator is None:
        return None
    if key in decorator.kwargs:
        return decorator.kwargs[key]
    if decorator.args:
        # Object-literal argument: { controllers: [...], imports: [...] }
        match = re.search(rf'{key}\s*[:=]\s*(\[.*?\])', decorator.args[0], re.DOTALL)
        if match:
            return match.group(1)
    return None


def build_group_descriptor(declaration: ClassDeclaration, source_location: str) -> ServiceGroupDescriptor:
    return ServiceGroupDescriptor(
        name=declaration.name,
        source_location=source_location,
        member_service_names=tuple(parse_name_list(_group_list_text(declaration, GROUP_MEMBER_KEY))),
        imported_group_names=tuple(parse_name_list(_group_list_text(declaration, GROUP_IMPORT_KEY))),
    )


def collect_groups(units: Iterable[SourceUnit]) -> List[ServiceGroupDescriptor]:
    return [
        build_group_descriptor(cls, unit.path)
        for unit, cls, kind in iter_classified(units)
        if kind == DeclarationKind.SERVICE_GROUP
    ]


# =============================================================================
# RESOLVER
# =============================================================================

class CategoryResolver:
    """Ordered fallback chain of category strategies, plus version lookup."""

    def __init__(self, groups: Iterable[ServiceGroupDescriptor] = (),
                 category_mapping: Optional[Dict[str, str]] = None):
        self.groups: Tuple[ServiceGroupDescriptor, ...] = tuple(groups)
        self.category_mapping = dict(category_mapping or {})
        self.strategies: Tuple[Callable[[str, str], Optional[str]], ...] = (
            self.category_from_group,
            self.category_from_path,
        )

    @classmethod
    def from_units(cls, units: Iterable[SourceUnit],
                   category_mapping: Optional[Dict[str, str]] = None) -> "CategoryResolver":
        return cls(collect_groups(units), category_mapping)

    def resolve_category(self, service_name: str, source_location: str) -> str:
        category = UNCATEGORIZED
        for strategy in self.strategies:
            found = strategy(service_name, source_location)
            if found:
                category = found
                break
        return self.category_mapping.get(category, category)

    def category_from_group(self, service_name: str, source_location: str = "") -> Optional[str]:
        for group in self.groups:
            if service_name in group.member_service_names:
                return self.format_group_name(group.name)
        logger.debug(f"No service group declares {service_name}, falling back to path")
        return None

    @staticmethod
    def category_from_path(service_name: str, source_location: str) -> Optional[str]:
        category = derive_category_from_path(source_location)
        return None if category == UNCATEGORIZED else category

    @staticmethod
    def resolve_version(source_location: str) -> Optional[str]:
        return match_first_version_tag(source_location)

    @staticmethod
    def format_group_name(name: str) -> str:
        """AdminAuthModule → "Admin Auth"; UserProfileSettingsModule → "User Profile Settings"."""
        for suffix in GROUP_NAME_SUFFIXES:
            if name.endswith(suffix) and len(name) > len(suffix):
                name = name[:-len(suffix)]
                break
        return " ".join(part for part in CAMEL_BOUNDARY.split(name) if part)
