"""Price assistant: search term generation and interactive price refinement."""

__version__ = "0.1.0"
