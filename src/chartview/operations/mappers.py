"""
Error mapping and CLI utilities.

Provides centralized exception-to-exit-code mapping and CLI command wrappers
to ensure consistent error handling across all Typer commands.
"""
from __future__ import annotations

import typer
from typing import Callable, TypeVar

T = TypeVar('T')

# Exit codes by error class; subclasses inherit their parent's code
EXIT_CODES = {
    "NotFoundError": 1,
    "ConfigurationError": 2,
    "ValidationError": 2,
    "ValueError": 2,
    "TransientNetworkError": 3,
    "AuthenticationError": 4,
}


def exit_code_for(exc: BaseException) -> int:
    """
    Map exception to standardized exit code.

    Returns:
    - 0: Success
    - 1: Chart, version or file not found (NotFoundError)
    - 2: Invalid input (ConfigurationError, ValidationError, ValueError)
    - 3: Network error (TransientNetworkError) or unknown error
    - 4: Credentials missing or rejected (AuthenticationError)

    Args:
        exc: Exception to map

    Returns:
        Exit code (1-4, with 3 as fallback for unknown exceptions)
    """
    for cls in type(exc).__mro__:
        if cls.__name__ in EXIT_CODES:
            return EXIT_CODES[cls.__name__]
    return 3


def run_and_exit(func: Callable[[], T]) -> T:
    """
    Unified error wrapper for CLI commands.

    Executes the given function and maps any exceptions to appropriate
    exit codes using typer.Exit. The error message goes to stderr.

    Args:
        func: Function to execute

    Returns:
        Function result if successful

    Raises:
        typer.Exit: With appropriate exit code if function raises exception
    """
    try:
        return func()
    except typer.Exit:
        raise
    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=exit_code_for(e)) from e
