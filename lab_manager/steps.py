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

"""Ordered step registry and resumable runner."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass

from rich.panel import Panel

from lab_manager import console, logger
from lab_manager.errors import StepFailed


@dataclass(frozen=True)
class Step:
    """One ordinally-positioned unit of provisioning work.

    Attributes:
        ordinal: One-based position in the run.
        name: Human-readable step name.
        action: Zero-argument callable performing the step's side effects.
        requires: RunConfig field names the action reads.
    """

    ordinal: int
    name: str
    action: Callable[[], None]
    requires: tuple[str, ...] = ()


def check_registry(steps: Sequence[Step]) -> None:
    """Ensure ordinals are unique and the sequence is already in ascending order.

    Raises:
        ValueError: If two steps share an ordinal or the order is wrong.
    """
    ordinals = [step.ordinal for step in steps]
    if len(set(ordinals)) != len(ordinals):
        raise ValueError(f"Duplicate step ordinals: {ordinals}")
    if ordinals != sorted(ordinals):
        raise ValueError(f"Steps are not in ascending order: {ordinals}")


def selected(steps: Sequence[Step], starting_step: int) -> list[Step]:
    """Return the steps that run for *starting_step*, in ascending ordinal order."""
    return sorted((step for step in steps if step.ordinal >= starting_step), key=lambda step: step.ordinal)


def required_fields(steps: Sequence[Step], starting_step: int) -> set[str]:
    """Union of RunConfig fields needed by the steps reachable from *starting_step*."""
    return {name for step in selected(steps, starting_step) for name in step.requires}


def run(steps: Sequence[Step], starting_step: int) -> None:
    """Execute every step whose ordinal is at least *starting_step*.

    Steps before *starting_step* are skipped entirely. A step whose ordinal is
    past the last one yields an empty run. The first failing step ends the run;
    nothing is retried or rolled back here.

    Args:
        steps: Registered steps.
        starting_step: First ordinal to execute.

    Raises:
        StepFailed: Wrapping the exception raised by the failing step.
    """
    to_run = selected(steps, starting_step)
    if not to_run:
        console.print(f"[yellow]ℹ️  No steps at or after step {starting_step}, nothing to do[/yellow]")
        return

    logger.info("Starting from step number %d", starting_step)
    for step in to_run:
        console.print(Panel.fit(f"{step.ordinal}- {step.name}", style="bold blue"))
        try:
            step.action()
        except Exception as err:
            console.print(f"[red]❌ Step {step.ordinal} ({step.name}) failed[/red]")
            raise StepFailed(step.ordinal, step.name, err) from err
        console.print(f"[green]✅ Step {step.ordinal} done: {step.name}[/green]")
