#!/usr/bin/env python3
"""
Deterministic Extractors Module
================================
Pure, table-driven extractors that turn a declaration graph into descriptors.

**Leaves:**
- Route path joining, parameter tokens, version/category heuristics
- Validation annotation → schema constraint mapping

**Structure:**
- Declared types → finite, cycle-safe TypeDescriptor trees
- Handlers → RouteDescriptors (parameters, body, response, guards)
- Service groups / source paths → category and version labels

**Examples:**
- Field names, formats and types → sample values
"""

from .path_utils import (
    combine_path_segments,
    convert_path_parameters,
    derive_category_from_path,
    humanize_segment,
    match_first_version_tag,
)
from .constraint_mapper import CONSTRAINT_RULES, ConstraintMapper, parse_argument
from .type_resolver import ResolutionContext, TypeResolver
from .route_extractor import RouteExtractor
from .category_resolver import CategoryResolver
from .example_generator import ExampleGenerator

__all__ = [
    # Leaves
    'combine_path_segments',
    'convert_path_parameters',
    'derive_category_from_path',
    'humanize_segment',
    'match_first_version_tag',
    'CONSTRAINT_RULES',
    'ConstraintMapper',
    'parse_argument',
    # Structure
    'ResolutionContext',
    'TypeResolver',
    'RouteExtractor',
    'CategoryResolver',
    # Examples
    'ExampleGenerator',
]
