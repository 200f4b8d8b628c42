"""
Ayysee Command-Line Interface
=============================

This package provides the command-line tools for Ayysee:

- **aysc**: Ayysee to IC10 compiler

The tool is implemented as a Click-based CLI application with
comprehensive help and error reporting.
"""

__all__ = ["aysc"]
