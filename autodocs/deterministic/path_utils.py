#!/usr/bin/env python3
"""
Path Utilities
==============
Pure string helpers for route paths and source locations.

- Route segment joining: ["/api/v1/", "admin", "/profile/"] → "api/v1/admin/profile"
- Express-style tokens → OpenAPI tokens: "users/:id" → "users/{id}"
- Version tag detection: "src/api/v2/user/user.controller.ts" → "v2"
- Category inference: "src/api/v1/admin/auth/auth.controller.ts" → "Admin - Auth"
"""

import re
from typing import Iterable, List, Optional

UNCATEGORIZED = "Uncategorized"

VERSION_TAG_PATTERN = re.compile(r'^v\d+$', re.IGNORECASE)
PATH_PARAM_PATTERN = re.compile(r':(\w+)')

# Directory segments that say nothing about the API surface
NON_INFORMATIVE_SEGMENTS = {
    "", ".", "..", "src", "lib", "app", "api", "apps",
    "controllers", "controller", "routers", "resources",
}

# Role qualifiers that precede the extension in file names (users.controller.ts)
FILENAME_QUALIFIERS = {
    "controller", "controllers", "router", "routes", "resource",
    "module", "service", "handler", "views", "api",
}


def combine_path_segments(segments: Iterable[Optional[str]]) -> str:
    """Join route segments with single separators and no leading/trailing slash."""
    cleaned = [(segment or "").strip("/") for segment in segments]
    return "/".join(segment for segment in cleaned if segment)


def convert_path_parameters(path: str) -> str:
    return PATH_PARAM_PATTERN.sub(r'{\1}', path)


def split_location(location_path: str) -> List[str]:
    """Split a source location on either separator style."""
    return [part for part in re.split(r'[\\/]+', location_path or "") if part]


def match_first_version_tag(location_path: str) -> Optional[str]:
    """Return the first ``v<digits>`` segment of a location, lowercased."""
    for segment in split_location(location_path):
        if VERSION_TAG_PATTERN.match(segment):
            return segment.lower()
    return None


def humanize_segment(segment: str) -> str:
    return " ".join(word[:1].upper() + word[1:] for word in segment.split("-"))


def file_stem(filename: str) -> str:
    """
    Strip the extension and role qualifiers from a file name.

    ``admin-auth.controller.ts`` → ``admin-auth``;
    ``admin_auth_controller.py`` → ``admin-auth``; ``users.py`` → ``users``.
    """
    parts = filename.split(".")
    if len(parts) > 1:
        parts = parts[:-1]
    while len(parts) > 1 and parts[-1].lower() in FILENAME_QUALIFIERS:
        parts.pop()

    words = ".".join(parts).replace("_", "-").split("-")
    while len(words) > 1 and words[-1].lower() in FILENAME_QUALIFIERS:
        words.pop()
    return "-".join(words)


def derive_category_from_path(location_path: str) -> str:
    """
    Infer a display category from a source location.

    Directory segments after the version tag (or all informative segments
    when there is none) are combined with the file stem; immediately
    repeated segments collapse into one.
    """
    parts = split_location(location_path)
    if not parts:
        return UNCATEGORIZED

    directories, filename = parts[:-1], parts[-1]

    version_index = next((i for i, d in enumerate(directories) if VERSION_TAG_PATTERN.match(d)), None)
    if version_index is not None:
        directories = directories[version_index + 1:]

    segments = [d.replace("_", "-") for d in directories if d.lower() not in NON_INFORMATIVE_SEGMENTS]
    stem = file_stem(filename)
    if stem and stem.lower() not in NON_INFORMATIVE_SEGMENTS:
        segments.append(stem)

    deduped: List[str] = []
    for segment in segments:
        if not deduped or deduped[-1].lower() != segment.lower():
            deduped.append(segment)

    if not deduped:
        return humanize_segment(stem) if stem else UNCATEGORIZED

    return " - ".join(humanize_segment(segment) for segment in deduped)
