"""
autodocs
========
Synthesize a versioned, categorized OpenAPI 3.0 document from the
declarations of a class-based service program.

Pipeline: SourceUnits → ServiceScanner → OpenAPISynthesizer → document.
"""

from autodocs.config import AutoDocsConfig, ConfigurationError, VersioningConfig
from autodocs.declarations import SourceUnit, load_source_units
from autodocs.openapi import OpenAPISynthesizer, synthesize, to_json, to_yaml
from autodocs.scanner import ServiceScanner
from autodocs.service import AutoDocsService

__version__ = "1.0.0"

__all__ = [
    'AutoDocsConfig',
    'AutoDocsService',
    'ConfigurationError',
    'OpenAPISynthesizer',
    'ServiceScanner',
    'SourceUnit',
    'VersioningConfig',
    'load_source_units',
    'synthesize',
    'to_json',
    'to_yaml',
]
