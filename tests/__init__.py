"""
Test Suite for AutoDocs
=======================

Coverage for the declaration-graph to OpenAPI pipeline.

Test Structure:
    - test_path_utils.py: Route joining, version tags, path categories
    - test_type_resolver.py: Cycle-safe and depth-bounded type resolution
    - test_constraint_mapper.py: Validation annotation table
    - test_example_generator.py: Example precedence
    - test_route_extractor.py: Handlers, parameters, bodies, guards
    - test_category_resolver.py: Group and path categories
    - test_openapi.py: Document synthesis, versioning, security
    - test_config.py: Configuration loading and validation
    - test_service.py: Rebuild lifecycle and coalescing
    - test_python_ast.py: Python source front-end
    - test_cli.py: Command-line entry point
"""

__version__ = "1.0.0"
