"""Manifest parsing (go.mod)."""

from cmdscan.manifest.go_mod import GoModParser, find_go_mod_in_parent_dirs, load_go_mod

__all__ = ["GoModParser", "find_go_mod_in_parent_dirs", "load_go_mod"]
