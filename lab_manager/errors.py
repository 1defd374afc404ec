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

"""Exception types raised by lab provisioning."""

from __future__ import annotations


class LabError(RuntimeError):
    """Base class for every fatal provisioning error."""


class ConfigError(LabError):
    """A required parameter is missing or malformed."""


class ActionFailed(LabError):
    """An external command exited non-zero.

    Attributes:
        description: Human-readable description of the action.
        output: Combined stdout/stderr captured from the command.
    """

    def __init__(self, description: str, output: str = "") -> None:
        super().__init__(f"{description} failed: {output.strip()[:500]}" if output else f"{description} failed")
        self.description = description
        self.output = output


class ApiUnavailable(LabError):
    """The management API returned a body that does not match its contract.

    Attributes:
        body: Raw response body, kept for diagnosis.
    """

    def __init__(self, message: str, body: str = "") -> None:
        super().__init__(f"{message}. Full response: {body}" if body else message)
        self.body = body


class AuthExhausted(LabError):
    """Login did not succeed within the bounded attempt budget."""


class ClusterCreateFailed(LabError):
    """Cluster creation did not return an identifier."""


class TokenRetrievalFailed(LabError):
    """No registration token was found for a freshly created cluster."""


class StepFailed(LabError):
    """A provisioning step aborted the run.

    Attributes:
        ordinal: Position of the failing step.
        name: Name of the failing step.
    """

    def __init__(self, ordinal: int, name: str, cause: BaseException) -> None:
        super().__init__(f"Step {ordinal} ({name}) failed: {cause}")
        self.ordinal = ordinal
        self.name = name


class ProvisioningIncomplete(LabError):
    """Some downstream clusters could not be provisioned.

    Attributes:
        failures: (cluster name, error message) pairs.
    """

    def __init__(self, failures: list[tuple[str, str]]) -> None:
        names = ", ".join(name for name, _ in failures)
        super().__init__(f"{len(failures)} downstream cluster(s) failed: {names}")
        self.failures = failures
