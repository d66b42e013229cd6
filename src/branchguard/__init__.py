# src/branchguard/__init__.py
"""Branch protection policy engine for pull request merges."""

__version__ = "0.1.0"
