"""Pipeline Graph.

Validation and analysis engine for visual CI/CD pipeline graphs.
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
