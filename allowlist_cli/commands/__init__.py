"""
CLI command modules.
"""

from allowlist_cli.commands import tree, proof, serve

__all__ = ["tree", "proof", "serve"]
