"""
Operations package - error mapping and output helpers for the CLI.
"""
from .mappers import exit_code_for, run_and_exit

__all__ = ["exit_code_for", "run_and_exit"]
