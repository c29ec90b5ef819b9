"""
Configuration for the autodocs pipeline.

Loaded from keyword arguments, a JSON/YAML file, or ``AUTODOCS_*`` environment
variables. Keys may be given in camelCase (``globalPrefix``) or snake_case
(``global_prefix``). Only ``title`` and ``version`` are required; a missing or
blank value raises ConfigurationError at construction time.
"""

import json
import logging
import os
import re
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional

import yaml

logger = logging.getLogger("autodocs.config")

VERSIONING_STRATEGIES = ("path", "decorator")

DEFAULT_SECURITY_SCHEME_NAME = "bearerAuth"
DEFAULT_SECURITY_SCHEME: Dict[str, Any] = {
    "type": "http",
    "scheme": "bearer",
    "bearerFormat": "JWT",
}

# Component name per scheme type
SECURITY_SCHEME_NAMES = {
    "http": "bearerAuth",
    "apiKey": "apiKeyAuth",
    "oauth2": "oauth2",
    "openIdConnect": "openIdConnect",
}


class ConfigurationError(ValueError):
    """Invalid or incomplete configuration; the only fatal startup error."""


def to_snake_case(key: str) -> str:
    return re.sub(r'(?<=[a-z0-9])([A-Z])', r'_\1', key).lower()


def normalize_keys(data: Dict[str, Any]) -> Dict[str, Any]:
    return {to_snake_case(k): v for k, v in (data or {}).items()}


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class VersioningConfig:
    enabled: bool = False
    strategy: str = "path"
    prefix: str = "/api"
    fallback: Optional[str] = None

    def __post_init__(self):
        if self.strategy not in VERSIONING_STRATEGIES:
            raise ConfigurationError(
                f'AutoDocs configuration error: versioning strategy "{self.strategy}" '
                f'is not one of {", ".join(VERSIONING_STRATEGIES)}'
            )
        if not self.prefix:
            self.prefix = "/api"

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "VersioningConfig":
        data = normalize_keys(data or {})
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "strategy": self.strategy,
            "prefix": self.prefix,
            "fallback": self.fallback,
        }


@dataclass
class AutoDocsConfig:
    """
    Documentation settings with the same defaults as the serving layer.
    Can be loaded from environment variables, config file, or CLI args.
    """
    title: str = ""
    version: str = ""
    description: Optional[str] = None

    # Source discovery (applied by the front-end collaborator)
    source_path: str = "src"
    exclude: List[str] = field(default_factory=list)

    # Paths
    global_prefix: Optional[str] = None
    docs_path: str = "/docs"
    spec_path: str = "/docs-json"
    servers: List[Dict[str, Any]] = field(default_factory=list)

    # Presentation
    theme: Dict[str, Any] = field(default_factory=dict)
    category_mapping: Dict[str, str] = field(default_factory=dict)

    # Lifecycle
    scan_on_start: bool = True
    watch_mode: bool = False

    # Security
    include_security: bool = True
    security_scheme: Optional[Dict[str, Any]] = None

    versioning: VersioningConfig = field(default_factory=VersioningConfig)

    def __post_init__(self):
        """Validate required fields and coerce nested sections."""
        if not isinstance(self.title, str) or not self.title.strip():
            raise ConfigurationError('AutoDocs configuration error: "title" is required and cannot be empty')
        if not isinstance(self.version, str) or not str(self.version).strip():
            raise ConfigurationError('AutoDocs configuration error: "version" is required and cannot be empty')

        if isinstance(self.versioning, dict):
            self.versioning = VersioningConfig.from_dict(self.versioning)
        elif self.versioning is None:
            self.versioning = VersioningConfig()

        self.source_path = self.source_path or "src"
        self.docs_path = self.docs_path or "/docs"
        self.spec_path = self.spec_path or "/docs-json"

    @property
    def security_scheme_name(self) -> str:
        scheme_type = (self.security_scheme or {}).get("type", "http")
        return SECURITY_SCHEME_NAMES.get(scheme_type, DEFAULT_SECURITY_SCHEME_NAME)

    @property
    def security_scheme_object(self) -> Dict[str, Any]:
        return dict(self.security_scheme) if self.security_scheme else dict(DEFAULT_SECURITY_SCHEME)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AutoDocsConfig":
        """Build from a camelCase or snake_case mapping; unknown keys are ignored."""
        data = normalize_keys(data)
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.debug(f"Ignoring unknown configuration keys: {', '.join(unknown)}")
        kwargs = {k: v for k, v in data.items() if k in known}
        if "version" in kwargs and isinstance(kwargs["version"], (int, float)):
            kwargs["version"] = str(kwargs["version"])
        return cls(**kwargs)

    @classmethod
    def from_env(cls, **overrides: Any) -> "AutoDocsConfig":
        """Load configuration from environment variables."""
        values: Dict[str, Any] = {
            "title": os.getenv("AUTODOCS_TITLE", ""),
            "version": os.getenv("AUTODOCS_VERSION", ""),
            "description": os.getenv("AUTODOCS_DESCRIPTION"),
            "source_path": os.getenv("AUTODOCS_SOURCE_PATH", "src"),
            "global_prefix": os.getenv("AUTODOCS_GLOBAL_PREFIX"),
            "docs_path": os.getenv("AUTODOCS_DOCS_PATH", "/docs"),
            "spec_path": os.getenv("AUTODOCS_SPEC_PATH", "/docs-json"),
            "include_security": _env_flag("AUTODOCS_INCLUDE_SECURITY", True),
            "scan_on_start": _env_flag("AUTODOCS_SCAN_ON_START", True),
            "watch_mode": _env_flag("AUTODOCS_WATCH_MODE", False),
            "versioning": VersioningConfig(
                enabled=_env_flag("AUTODOCS_VERSIONING", False),
                prefix=os.getenv("AUTODOCS_VERSIONING_PREFIX", "/api"),
                fallback=os.getenv("AUTODOCS_VERSIONING_FALLBACK"),
            ),
        }
        exclude = os.getenv("AUTODOCS_EXCLUDE")
        if exclude:
            values["exclude"] = [p.strip() for p in exclude.split(",") if p.strip()]
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    @classmethod
    def from_file(cls, path: str, **overrides: Any) -> "AutoDocsConfig":
        """Load configuration from JSON or YAML file."""
        if not path.endswith((".yaml", ".yml", ".json")):
            raise ConfigurationError(f"AutoDocs configuration error: unsupported config file type: {path}")
        with open(path, "r", encoding="utf-8") as f:
            if path.endswith((".yaml", ".yml")):
                data = yaml.safe_load(f) or {}
            else:
                data = json.load(f)
        if not isinstance(data, dict):
            raise ConfigurationError(f"AutoDocs configuration error: {path} must contain a mapping")

        data = normalize_keys(data)
        data.update({k: v for k, v in overrides.items() if v is not None})
        return cls.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return {
            "title": self.title,
            "version": self.version,
            "description": self.description,
            "source_path": self.source_path,
            "exclude": list(self.exclude),
            "global_prefix": self.global_prefix,
            "docs_path": self.docs_path,
            "spec_path": self.spec_path,
            "servers": list(self.servers),
            "theme": dict(self.theme),
            "category_mapping": dict(self.category_mapping),
            "scan_on_start": self.scan_on_start,
            "watch_mode": self.watch_mode,
            "include_security": self.include_security,
            "security_scheme": self.security_scheme,
            "versioning": self.versioning.to_dict(),
        }
