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

"""Downstream cluster creation, registration token retrieval, and import commands."""

from __future__ import annotations

import json
import re
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from pydantic import ValidationError
from rich.panel import Panel
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_fixed

from lab_manager import console, logger
from lab_manager.api import RancherApi
from lab_manager.auth import Authenticator
from lab_manager.config import RunConfig
from lab_manager.constants import API_IMPORT, RANCHER_AGENT_IMAGE
from lab_manager.errors import ApiUnavailable, ClusterCreateFailed, TokenRetrievalFailed
from lab_manager.models import ImportCommandSet, RegistrationTokenList

# ============================================================================
# Response sanitization
# ============================================================================

_NULL_VALUE = re.compile(r':\s*null\b')
_KEY_STRING = re.compile(r'":"')
_KEY_OBJECT = re.compile(r'":\{"')
_POWERSHELL_SNIPPET = re.compile(r'PowerShell -NoLogo -NonInteractive -Command[^|]*\| iex}\\"')


def sanitize(raw: str) -> str:
    """Repair a registration token listing so that it parses as JSON.

    Applied to every line of *raw*, in order:

    1. ``null`` values become empty strings (``:null`` -> ``: ""``).
    2. Key/value delimiters get one space (``":"`` -> ``": "``, ``":{"`` -> ``": {"``).
    3. Embedded Windows join snippets (``PowerShell -NoLogo -NonInteractive -Command
       ... | iex}\\"``) are removed, leaving an empty string value.

    Args:
        raw: Response body as returned by the API.

    Returns:
        The cleaned body.
    """
    cleaned = []
    for line in raw.splitlines(keepends=True):
        line = _NULL_VALUE.sub(': ""', line)
        line = _KEY_STRING.sub('": "', line)
        line = _KEY_OBJECT.sub('": {"', line)
        line = _POWERSHELL_SNIPPET.sub("", line)
        cleaned.append(line)
    return "".join(cleaned)


def parse_registration_tokens(raw: str) -> RegistrationTokenList:
    """Sanitize and parse a registration token listing.

    Raises:
        ApiUnavailable: If the cleaned body is still not a token listing.
    """
    cleaned = sanitize(raw)
    try:
        return RegistrationTokenList.model_validate(json.loads(cleaned))
    except (ValueError, ValidationError) as err:
        raise ApiUnavailable("Registration token listing could not be parsed", raw) from err


# ============================================================================
# Naming and command synthesis
# ============================================================================

def cluster_name(prefix: str, index: int) -> str:
    """Deterministic downstream cluster name, e.g. ``ts-suse-demo-dsc-01``."""
    return f"{prefix}-{index:02d}"


def build_import_commands(cfg: RunConfig, index: int, name: str, cluster_id: str, token: str) -> ImportCommandSet:
    """Synthesize the apply, insecure-apply, and node-agent commands for one cluster."""
    manifest_url = f"{cfg.base_url}{API_IMPORT}/{token}_{cluster_id}.yaml"
    agent_command = (
        "sudo docker run -d --privileged --restart=unless-stopped --net=host "
        "-v /etc/kubernetes:/etc/kubernetes -v /var/run:/var/run "
        f"{RANCHER_AGENT_IMAGE}:{cfg.rancher_version} --server {cfg.base_url} --token {token}"
    )
    return ImportCommandSet(
        index=index,
        cluster_name=name,
        cluster_id=cluster_id,
        apply_command=f"kubectl apply -f {manifest_url}",
        insecure_command=f"curl --insecure -sfL {manifest_url} | kubectl apply -f -",
        agent_command=agent_command,
    )


# ============================================================================
# Provisioning
# ============================================================================

@dataclass
class ProvisionReport:
    """Outcome of one provisioning pass.

    Attributes:
        results: Import commands for clusters created in this pass, by ascending index.
        skipped: Names of clusters that already existed.
        failures: (cluster name, error message) for clusters that could not be provisioned.
    """

    results: list[ImportCommandSet] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failures: list[tuple[str, str]] = field(default_factory=list)


class ClusterProvisioner:
    """Creates downstream clusters one at a time and collects their import commands."""

    def __init__(
        self,
        cfg: RunConfig,
        api: RancherApi,
        authenticator: Authenticator,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.cfg = cfg
        self.api = api
        self.authenticator = authenticator
        self.sleep = sleep

    def _fetch_token(self, cluster_id: str) -> str:
        token = parse_registration_tokens(self.api.registration_tokens_raw()).token_for(cluster_id)
        if not token:
            raise TokenRetrievalFailed(f"No registration token found for cluster {cluster_id}")
        return token

    def fetch_registration_token(self, cluster_id: str) -> str:
        """Wait for the token to appear, then read it with a bounded number of attempts.

        Raises:
            TokenRetrievalFailed: If no attempt finds a token for *cluster_id*.
            ApiUnavailable: If the listing cannot be parsed even after sanitizing.
        """
        self.sleep(self.cfg.token_fetch_delay_seconds)
        retrying = Retrying(
            stop=stop_after_attempt(self.cfg.token_fetch_attempts),
            wait=wait_fixed(self.cfg.token_fetch_delay_seconds),
            retry=retry_if_exception_type(TokenRetrievalFailed),
            sleep=self.sleep,
            reraise=True,
        )
        return retrying(self._fetch_token, cluster_id)

    def provision_one(self, index: int) -> ImportCommandSet | None:
        """Create cluster *index* unless it exists and return its import commands.

        Returns:
            The import commands, or None when the cluster already existed.

        Raises:
            ApiUnavailable: If the cluster list is malformed.
            ClusterCreateFailed: If creation returns no identifier.
            TokenRetrievalFailed: If no registration token shows up.
        """
        name = cluster_name(self.cfg.cluster_prefix, index)
        console.print(f"[yellow]ℹ️  Creating {name}...[/yellow]")

        existing = self.api.list_clusters().find(name)
        if existing is not None:
            console.print(f"[yellow]   Cluster {name} already exists with ID {existing.id}, skipping creation[/yellow]")
            return None

        created = self.api.create_cluster(name)
        if not created.created:
            raise ClusterCreateFailed(f"Failed to create cluster {name}: no 'id' returned")
        console.print(f"[green]  ✓ Cluster {name} created with ID {created.id}[/green]")

        token = self.fetch_registration_token(created.id)
        console.print(f"[green]  ✓ Registration token retrieved for {name}[/green]")
        return build_import_commands(self.cfg, index, name, created.id, token)

    def provision(self, report: ProvisionReport | None = None) -> ProvisionReport:
        """Provision clusters 1..dsc_count in ascending order.

        Cluster creation and token failures are recorded and the loop moves on
        to the next index; a malformed cluster list aborts immediately.

        Args:
            report: Report to fill in place, so that partial results survive an abort.

        Raises:
            ApiUnavailable: If the management API breaks its response contract.
        """
        self.authenticator.acquire_token()
        total = self.cfg.dsc_count or 0
        console.print(Panel.fit(f"Creating & importing {total} downstream clusters", style="bold blue"))

        report = report if report is not None else ProvisionReport()
        for index in range(1, total + 1):
            name = cluster_name(self.cfg.cluster_prefix, index)
            try:
                commands = self.provision_one(index)
            except (ClusterCreateFailed, TokenRetrievalFailed) as err:
                logger.error("%s", err)
                console.print(f"[red]❌ {err}[/red]")
                report.failures.append((name, str(err)))
                continue
            if commands is None:
                report.skipped.append(name)
            else:
                report.results.append(commands)
        return report


def provision_clusters(
    cfg: RunConfig,
    api: RancherApi,
    authenticator: Authenticator,
    sleep: Callable[[float], None] = time.sleep,
    report: ProvisionReport | None = None,
) -> ProvisionReport:
    """Provision every requested downstream cluster; see :meth:`ClusterProvisioner.provision`."""
    return ClusterProvisioner(cfg, api, authenticator, sleep=sleep).provision(report)

