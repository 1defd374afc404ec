# /*
# Copyright 2026 The Rancher Lab Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# */

"""Uniform boundary for external commands (helm, kubectl, bash)."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import sh

from lab_manager import console, logger
from lab_manager.errors import ActionFailed


def _decode(stream: Any) -> str:
    if isinstance(stream, bytes):
        return stream.decode(errors="replace")
    return str(stream or "")


def invoke(description: str, action: Callable[[], Any]) -> str:
    """Run an external action and turn a non-zero exit into a fatal error.

    Args:
        description: What the action does, used in log lines and errors.
        action: Zero-argument callable performing the command.

    Returns:
        Captured command output.

    Raises:
        ActionFailed: If the command exits non-zero or cannot be started.
    """
    console.print(f"[yellow]ℹ️  {description}...[/yellow]")
    try:
        output = _decode(action())
    except sh.ErrorReturnCode as err:
        output = _decode(err.stdout) + _decode(err.stderr)
        logger.error("%s - command failed (exit %s)", description, err.exit_code)
        console.print(f"[red]❌ {description} failed - reason: {output.strip()}[/red]")
        raise ActionFailed(description, output) from err
    except (sh.CommandNotFound, OSError) as err:
        console.print(f"[red]❌ {description} failed - reason: {err}[/red]")
        raise ActionFailed(description, str(err)) from err
    console.print(f"[green]  ✓ {description} succeeded[/green]")
    return output


def helm(description: str, *args: str) -> str:
    """Run a helm command through :func:`invoke`."""
    return invoke(description, lambda: sh.helm(*args, _err_to_out=True))


def kubectl(description: str, *args: str, stdin: str | None = None) -> str:
    """Run a kubectl command through :func:`invoke`.

    Args:
        description: What the command does.
        *args: kubectl arguments.
        stdin: Optional text piped to the command (e.g. a manifest for ``apply -f -``).

    Returns:
        Captured command output.
    """
    if stdin is None:
        return invoke(description, lambda: sh.kubectl(*args, _err_to_out=True))
    return invoke(description, lambda: sh.kubectl(*args, _in=stdin, _err_to_out=True))


def bash(description: str, script: str) -> str:
    """Run a bash snippet through :func:`invoke`."""
    return invoke(description, lambda: sh.bash("-c", script, _err_to_out=True))


def command_exists(cmd: str) -> bool:
    """Return whether *cmd* is on the system PATH."""
    try:
        sh.which(cmd)
    except (sh.ErrorReturnCode, sh.CommandNotFound):
        return False
    return True


def require_command(cmd: str) -> None:
    """Check if a command exists on the system PATH.

    Args:
        cmd: Name of the CLI command to check.

    Raises:
        ActionFailed: If the command is not found.
    """
    if not command_exists(cmd):
        raise ActionFailed(f"Checking for '{cmd}'", f"Required command '{cmd}' not found. Please install it first.")
