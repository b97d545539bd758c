"""Shell, git and pip utilities.

Provides simple wrappers around subprocess calls for running external
commands, plus output formatting helpers.
"""

from __future__ import annotations

import subprocess

import click


def capture(*args: str, check: bool = True, cwd: str | None = None) -> str:
    """Run a command and return its stripped stdout.

    Args:
        *args: Command and arguments (e.g., "pip", "index", "versions", "foo").
        check: If True (default), raise ``CalledProcessError`` on non-zero
               exit. Set to False for commands that may legitimately fail.
        cwd: Working directory for the command.
    """
    result = subprocess.run(
        list(args), capture_output=True, text=True, check=check, cwd=cwd
    )
    return result.stdout.strip()


def git(*args: str, check: bool = True) -> str:
    """Run a git command and return stdout.

    Args:
        *args: Arguments to pass to git (e.g., "tag", "--list").
        check: If True (default), raise on non-zero exit. Set to False
               for commands that may legitimately fail (e.g., tag lookup).
    """
    return capture("git", *args, check=check)


def pip(*args: str) -> subprocess.CompletedProcess[str]:
    """Run pip and return the completed process with captured output.

    Never raises on a non-zero exit; callers inspect ``returncode`` and
    ``stderr`` because pip reports lookup failures on either.
    """
    return subprocess.run(["pip", *args], capture_output=True, text=True)


def run(
    *args: str, check: bool = True, cwd: str | None = None
) -> subprocess.CompletedProcess[bytes]:
    """Run an arbitrary command, streaming its output to the terminal.

    Returns:
        CompletedProcess with returncode for checking success.
    """
    return subprocess.run(args, check=check, cwd=cwd)


def poetry_lock(cwd: str) -> None:
    """Regenerate ``poetry.lock`` in ``cwd`` without upgrading anything."""
    label = click.style("Running command", bold=True)
    click.echo(f"{label}: poetry lock --no-update at {click.style(cwd, bold=True)}")
    run("poetry", "lock", "--no-update", cwd=cwd)


def step(msg: str) -> None:
    """Print a visually distinct step header.

    Used to separate major phases of a run in terminal output.
    """
    click.echo(f"\n{'─' * 60}\n{msg}\n{'─' * 60}")
