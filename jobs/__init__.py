"""
Jobs Module

Batch job configuration and CLI.

This module provides:
- YAML-based job configuration loading
- CLI for scanning, patching and executing documents
- Seed management for reproducible decoys and shuffles
- Artifact storage (outcomes, patched files, summaries)
"""

__version__ = "0.1.0"
