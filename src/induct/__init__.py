"""induct package root."""

from induct.execution import ExecutionEngine, is_project_file
from induct.spec_binder import parse_project_spec, parse_spec
from induct.tree_parser import parse_tree

__all__ = [
    "__version__",
    "ExecutionEngine",
    "is_project_file",
    "parse_project_spec",
    "parse_spec",
    "parse_tree",
]

__version__ = "0.1.0"
