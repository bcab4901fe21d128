"""Subprocess execution."""

from .process import ProcessError, run, run_logged

__all__ = ["ProcessError", "run", "run_logged"]
