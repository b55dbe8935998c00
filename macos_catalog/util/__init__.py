"""Utility module for macos-catalog."""

from .shell import ShellResult, run

__all__ = ["ShellResult", "run"]
