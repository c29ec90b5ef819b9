"""
Service scanning: declaration graph → ServiceDescriptors.

Every service declaration is classified once, then handed to the route
extractor and the category/version resolver. The resulting descriptors are
immutable and carry everything the synthesizer needs.
"""

import logging
import re
from typing import Any, Dict, List, Optional, Sequence

from autodocs.base import ServiceDescriptor, all_routes
from autodocs.config import AutoDocsConfig
from autodocs.declarations import (
    ClassDeclaration,
    DeclarationIndex,
    DeclarationKind,
    SERVICE_DECORATORS,
    SourceUnit,
    iter_classified,
)
from autodocs.deterministic.category_resolver import CategoryResolver
from autodocs.deterministic.route_extractor import RouteExtractor, collect_guards
from autodocs.deterministic.type_resolver import DEFAULT_MAX_DEPTH, TypeResolver

logger = logging.getLogger("autodocs.scanner")

BASE_PATH_KEYS = ("path", "prefix")
OBJECT_PATH_PATTERN = re.compile(r'''\bpath\s*:\s*['"`]([^'"`]*)['"`]''')


def service_base_path(declaration: ClassDeclaration) -> str:
    """``@Controller("users")``, ``@Controller(path="users")`` or ``@Controller({ path: 'users' })``."""
    decorator = declaration.find_decorator(SERVICE_DECORATORS)
    if decorator is None:
        return ""
    for key in BASE_PATH_KEYS:
        if decorator.kwargs.get(key):
            return decorator.kwargs[key]
    if decorator.args:
        first = decorator.args[0].strip()
        if first.startswith("{"):
            match = OBJECT_PATH_PATTERN.search(first)
            return match.group(1) if match else ""
        return first
    return ""


class ServiceScanner:
    """
    Build ServiceDescriptors for every service declaration in a set of units.

    Features:
    - One fresh TypeResolver context per type query
    - Group-based categories with path-based fallback
    - Per-scan statistics for reporting
    """

    def __init__(self, config: Optional[AutoDocsConfig] = None, max_depth: int = DEFAULT_MAX_DEPTH):
        self.config = config
        self.max_depth = max_depth
        self.services: List[ServiceDescriptor] = []
        self.stats: Dict[str, int] = {}

    def scan(self, units: Sequence[SourceUnit]) -> List[ServiceDescriptor]:
        units = list(units)
        index = DeclarationIndex(units)
        extractor = RouteExtractor(TypeResolver(index, max_depth=self.max_depth))
        categories = CategoryResolver.from_units(
            units, self.config.category_mapping if self.config else None
        )

        self.stats = {"units": len(units), "services": 0, "service_groups": len(categories.groups),
                      "unrecognized": 0, "routes": 0}
        services: List[ServiceDescriptor] = []

        for unit, declaration, kind in iter_classified(units):
            if kind == DeclarationKind.SERVICE_GROUP:
                continue
            if kind == DeclarationKind.UNRECOGNIZED:
                self.stats["unrecognized"] += 1
                continue

            base_path = service_base_path(declaration)
            class_guards = collect_guards(declaration.decorators)
            routes = extractor.extract_routes(declaration, base_path, class_guards)

            services.append(ServiceDescriptor(
                name=declaration.name,
                base_path=base_path,
                source_location=unit.path,
                category=categories.resolve_category(declaration.name, unit.path),
                version=categories.resolve_version(unit.path),
                description=declaration.doc.strip() if declaration.doc and declaration.doc.strip() else None,
                routes=tuple(routes),
                guards=tuple(class_guards),
            ))
            self.stats["services"] += 1
            self.stats["routes"] += len(routes)

        self.services = services
        logger.info(
            f"Scanned {self.stats['services']} services ({self.stats['routes']} routes) "
            f"from {self.stats['units']} source units"
        )
        return services

    def summary(self) -> Dict[str, Any]:
        """Generate summary statistics."""
        by_category: Dict[str, int] = {}
        by_version: Dict[str, int] = {}
        by_method: Dict[str, int] = {}
        public = 0

        for service in self.services:
            by_category[service.category] = by_category.get(service.category, 0) + len(service.routes)
            version = service.version or "unversioned"
            by_version[version] = by_version.get(version, 0) + len(service.routes)

        routes = all_routes(self.services)
        for route in routes:
            method = route.http_method.value
            by_method[method] = by_method.get(method, 0) + 1
            if route.is_public:
                public += 1

        total = len(routes)
        return {
            "services": len(self.services),
            "routes": total,
            "public": public,
            "secured": total - public,
            "units": self.stats.get("units", 0),
            "service_groups": self.stats.get("service_groups", 0),
            "by_category": dict(sorted(by_category.items())),
            "by_version": dict(sorted(by_version.items())),
            "by_method": by_method,
        }
