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

"""Typed views of the management API responses the lab reads."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field


class _ApiModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class LoginResponse(_ApiModel):
    """Body of the local-provider login action."""

    token: str | None = None
    message: str | None = None

    @property
    def succeeded(self) -> bool:
        return not self.message and bool(self.token)


class Resource(_ApiModel):
    """Any object whose creation is signalled by an ``id`` field."""

    id: str | None = None
    name: str | None = None

    @property
    def created(self) -> bool:
        return bool(self.id) and self.id != "null"


class Setting(Resource):
    value: str | None = None


class ClusterList(_ApiModel):
    data: list[Resource]

    def find(self, name: str) -> Resource | None:
        return next((cluster for cluster in self.data if cluster.name == name), None)


class User(Resource):
    username: str | None = None


class UserList(_ApiModel):
    data: list[User] = Field(default_factory=list)


class GlobalRoleBinding(Resource):
    user_id: str | None = Field(default=None, alias="userId")
    global_role_id: str | None = Field(default=None, alias="globalRoleId")


class GlobalRoleBindingList(_ApiModel):
    data: list[GlobalRoleBinding] = Field(default_factory=list)


class RegistrationToken(_ApiModel):
    cluster_id: str | None = Field(default=None, alias="clusterId")
    token: str | None = None
    manifest_url: str | None = Field(default=None, alias="manifestUrl")


class RegistrationTokenList(_ApiModel):
    data: list[RegistrationToken]

    def token_for(self, cluster_id: str) -> str | None:
        """Return the first non-empty token registered for *cluster_id*."""
        for entry in self.data:
            if entry.cluster_id == cluster_id and entry.token:
                return entry.token
        return None


@dataclass(frozen=True)
class ImportCommandSet:
    """Three equivalent ways to attach one downstream cluster.

    Attributes:
        index: One-based downstream cluster index.
        cluster_name: Derived cluster name.
        cluster_id: Identifier assigned by the management API.
        apply_command: ``kubectl apply`` of the import manifest.
        insecure_command: ``curl --insecure`` piped into ``kubectl apply``.
        agent_command: Privileged node-agent ``docker run`` join command.
    """

    index: int
    cluster_name: str
    cluster_id: str
    apply_command: str
    insecure_command: str
    agent_command: str

    def lines(self) -> list[str]:
        return [
            f"Cluster Description: Downstream Cluster Number {self.index}",
            f"Cluster Name: {self.cluster_name}",
            f"Import secure command: {self.apply_command}",
            f"Import un-secure command: {self.insecure_command}",
            f"Node agent command: {self.agent_command}",
        ]
