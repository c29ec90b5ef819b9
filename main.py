#!/usr/bin/env python3
"""
AutoDocs - OpenAPI Synthesis CLI
================================
Generate a versioned, categorized OpenAPI 3.0 document from decorated
service classes.

Features:
  - Python sources (AST, no code execution) or a serialized declaration graph
  - Cycle-safe type resolution with validation constraints and examples
  - Group-based and path-based categories, path-based API versions
  - JSON or YAML output
  - Local directories, single files, or Git URLs

Usage: python main.py [OPTIONS] <target>
"""

import sys
import os
import argparse
import tempfile
import shutil
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

# =============================================================================
# DEPENDENCY CHECK
# =============================================================================
REQUIRED = {"rich": "rich>=13.7.0", "dotenv": "python-dotenv>=1.0.0", "yaml": "pyyaml>=6.0"}

def check_deps():
    missing = []
    for mod, pkg in REQUIRED.items():
        try:
            __import__(mod)
        except ImportError:
            missing.append(pkg)
    if missing:
        print(f"\nMissing: pip install {' '.join(missing)}\n")
        sys.exit(1)

check_deps()

from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich import box
from dotenv import load_dotenv

from autodocs import __version__
from autodocs.base import ServiceDescriptor
from autodocs.config import AutoDocsConfig, ConfigurationError
from autodocs.declarations import SourceUnit, load_source_units
from autodocs.frontends import PythonSourceParser
from autodocs.openapi import to_json, to_yaml
from autodocs.service import AutoDocsService

load_dotenv()
console = Console()

GRAPH_SUFFIXES = (".json", ".yaml", ".yml")
GIT_URL_PREFIXES = ("http://", "https://", "git@")

# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================
def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """Configure structured logging for the pipeline."""
    logger = logging.getLogger("autodocs")
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # Clear existing handlers
    logger.handlers.clear()

    # Console handler with structured format
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.WARNING)  # Only warnings and errors to console
    console_formatter = logging.Formatter(
        '%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)

    # File handler if specified
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_formatter = logging.Formatter(
            '{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s"}',
            datefmt='%Y-%m-%dT%H:%M:%S'
        )
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)

    return logger

logger = setup_logging()

# =============================================================================
# CONFIGURATION & INPUT
# =============================================================================
def build_config(args: argparse.Namespace) -> AutoDocsConfig:
    """Config file (or AUTODOCS_* environment) with CLI overrides on top."""
    overrides: Dict[str, Any] = {
        "title": args.title,
        "version": args.api_version,
        "global_prefix": args.global_prefix,
    }
    if args.no_security:
        overrides["include_security"] = False

    if args.config:
        config = AutoDocsConfig.from_file(args.config, **overrides)
    else:
        config = AutoDocsConfig.from_env(**overrides)

    if args.versioning:
        config.versioning.enabled = True
    return config


def load_units(target: str, config: AutoDocsConfig) -> List[SourceUnit]:
    """Serialized graphs load directly; anything else goes through the Python front-end."""
    path = Path(target)
    if path.is_file() and path.suffix.lower() in GRAPH_SUFFIXES:
        return load_source_units(path)

    root = path
    if path.is_dir() and config.source_path and (path / config.source_path).is_dir():
        root = path / config.source_path
    return PythonSourceParser(exclude=config.exclude).parse_tree(root)

# =============================================================================
# OUTPUT FORMATTERS
# =============================================================================
def make_table(services: List[ServiceDescriptor]) -> Table:
    t = Table(title=" Documented Services", box=box.ROUNDED, header_style="bold magenta")
    t.add_column("#", style="dim", width=4)
    t.add_column("Category", style="cyan", max_width=30)
    t.add_column("Service", style="blue", max_width=30)
    t.add_column("Version", width=9)
    t.add_column("Routes", justify="right", width=7)
    t.add_column("Public", justify="right", width=7)
    t.add_column("Source", style="dim", max_width=40)

    ordered = sorted(services, key=lambda s: (s.category, s.version or "", s.name))
    for i, service in enumerate(ordered[:100], 1):
        public = len([r for r in service.routes if r.is_public])
        t.add_row(
            str(i), service.category, service.name, service.version or "-",
            str(len(service.routes)), str(public), service.source_location
        )

    if len(ordered) > 100:
        t.add_row("...", "...", f"... +{len(ordered) - 100} more", "", "", "", "")

    return t

def make_summary(s: Dict[str, Any], document: Dict[str, Any]) -> Panel:
    txt = f"""
[bold cyan] Synthesis Summary[/bold cyan]

[bold]Services:[/bold] {s['services']} | Routes: {s['routes']}
[bold]Paths:[/bold] {len(document.get('paths', {}))} | Schemas: {len(document.get('components', {}).get('schemas', {}))}
[bold]Public:[/bold] {s['public']} | Secured: {s['secured']}

[bold cyan]By Category:[/bold cyan]
""" + "\n".join([f"   {category}: {count}" for category, count in s['by_category'].items()])

    txt += """

[bold cyan]By Version:[/bold cyan]
""" + "\n".join([f"   {version}: {count}" for version, count in s['by_version'].items()])

    return Panel(txt, title=" Analysis Results", border_style="cyan")

# =============================================================================
# GIT HELPER
# =============================================================================
def clone_repo(url: str) -> str:
    import git

    tmp = tempfile.mkdtemp(prefix="autodocs_")
    console.print(f"[cyan]Cloning: {url}[/cyan]")
    git.Repo.clone_from(url, tmp, depth=1)
    console.print(f"[green] Cloned[/green]")
    return tmp

# =============================================================================
# MAIN CLI
# =============================================================================
def main(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(
        description=f"AutoDocs OpenAPI Synthesizer v{__version__}",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py ./app --title "Shop API" --api-version 1.0      # Python sources
  python main.py ./app --config autodocs.yaml --format yaml       # Config file, YAML output
  python main.py graph.json --title API --api-version 2 --versioning
  python main.py https://github.com/org/repo.git --config autodocs.json
        """
    )

    # Target
    parser.add_argument("target", help="Directory, Python file, declaration graph (JSON/YAML) or Git URL")

    # Document options
    doc_group = parser.add_argument_group("Document Options")
    doc_group.add_argument("--config", metavar="FILE",
                           help="Configuration file (JSON/YAML)")
    doc_group.add_argument("--title", help="API title (overrides config)")
    doc_group.add_argument("--api-version", metavar="VERSION", help="API version (overrides config)")
    doc_group.add_argument("--global-prefix", metavar="PREFIX",
                           help="Prefix for every path when versioning is disabled")
    doc_group.add_argument("--versioning", action="store_true",
                           help="Group paths and servers by version tags found in source paths")
    doc_group.add_argument("--no-security", action="store_true",
                           help="Omit the security scheme and per-operation requirements")

    # Output options
    output_group = parser.add_argument_group("Output Options")
    output_group.add_argument("-o", "--output", help="Output file (default: openapi.<format>)")
    output_group.add_argument("--format", choices=("json", "yaml"), default="json",
                              help="Output format (default: json)")
    output_group.add_argument("--log-file", metavar="FILE", help="Write JSON-lines debug log to file")

    # General
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--quiet", "-q", action="store_true", help="Minimal output")

    args = parser.parse_args(argv)
    setup_logging("DEBUG" if args.verbose else "INFO", args.log_file)

    # Banner
    if not args.quiet:
        console.print(Panel.fit(
            f"[bold cyan] AutoDocs OpenAPI Synthesizer v{__version__}[/bold cyan]\n"
            "[dim]Services | Routes | Types | Constraints | Versions | Categories[/dim]",
            border_style="cyan"
        ))

    try:
        config = build_config(args)
    except ConfigurationError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(2)

    target = args.target
    tmp = None

    try:
        # Clone if URL
        if target.startswith(GIT_URL_PREFIXES):
            tmp = clone_repo(target)
            target = tmp
        elif not os.path.exists(target):
            console.print(f"[red]Error: {target} not found[/red]")
            sys.exit(1)

        if not args.quiet:
            console.print(f"\n[bold cyan] Scanning...[/bold cyan] [dim]{args.target}[/dim]")

        units = load_units(target, config)
        service = AutoDocsService(config, lambda: units)
        service.request_rebuild()
        document = service.document() or {}
        summary = service.scanner.summary()

        if not args.quiet:
            console.print(f"\n[green] Documented {summary['routes']} routes in {summary['services']} services[/green]")
            console.print("\n" + "=" * 70)
            console.print(make_summary(summary, document))
            console.print()
            if service.services:
                console.print(make_table(service.services))

        output_file = args.output or f"openapi.{args.format}"
        rendered = to_yaml(document) if args.format == "yaml" else to_json(document)
        with open(output_file, "w", encoding="utf-8") as f:
            f.write(rendered)
        logger.info(f"Wrote {output_file}")
        if not args.quiet:
            console.print(f"\n[green] Saved: {output_file}[/green]")

    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)
    except Exception as e:
        console.print(f"\n[red]Error: {e}[/red]")
        if args.verbose:
            console.print_exception()
        sys.exit(1)
    finally:
        if tmp and os.path.exists(tmp):
            shutil.rmtree(tmp, ignore_errors=True)

    if not args.quiet:
        console.print("\n[bold green] Complete![/bold green]")
    sys.exit(0)


if __name__ == "__main__":
    main()
