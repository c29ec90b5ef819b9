"""
Source front-ends: turn project files into declaration-graph SourceUnits.
"""

from .python_ast import DEFAULT_IGNORE_DIRS, PythonSourceParser

__all__ = [
    'DEFAULT_IGNORE_DIRS',
    'PythonSourceParser',
]
