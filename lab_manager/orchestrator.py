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

"""Orchestration: the concrete lab step registry and the run workflow."""

from __future__ import annotations

import time
from collections.abc import Callable

from rich.panel import Panel

from lab_manager import components, console, steps
from lab_manager.api import RancherApi
from lab_manager.auth import Authenticator, Session
from lab_manager.config import RunConfig
from lab_manager.errors import ProvisioningIncomplete
from lab_manager.executor import require_command
from lab_manager.models import ImportCommandSet
from lab_manager.provisioner import ProvisionReport, provision_clusters
from lab_manager.settings import ensure_agent_tls_mode, ensure_demo_user
from lab_manager.steps import Step

# Steps up to this ordinal drive helm/kubectl against the management cluster.
LAST_CLUSTER_STEP = 14
LAST_HELM_STEP = 12

_API_FIELDS = ("rancher_url", "default_pass")


# ============================================================================
# Step registry
# ============================================================================


class LabRun:
    """Run-scoped state shared by the steps: session, API client, and provisioning results.

    Args:
        cfg: Resolved configuration.
        api: Management API client; built from *cfg* when omitted.
        sleep: Sleep function for every wait in the run, replaceable in tests.
    """

    def __init__(
        self,
        cfg: RunConfig,
        api: RancherApi | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.cfg = cfg
        self.session = Session()
        self.api = api or RancherApi(cfg, self.session)
        self.sleep = sleep
        self.authenticator = Authenticator(cfg, self.api, self.session, sleep=sleep)
        self.report: ProvisionReport | None = None

    def _wait_for_rancher(self) -> None:
        self.authenticator.wait_until_reachable()

    def _acquire_token(self) -> None:
        self.authenticator.acquire_token()

    def _provision(self) -> None:
        self.report = ProvisionReport()
        provision_clusters(self.cfg, self.api, self.authenticator, sleep=self.sleep, report=self.report)
        if self.report.failures:
            raise ProvisioningIncomplete(self.report.failures)

    def build_steps(self) -> list[Step]:
        """Return the ordered lab registry bound to this run."""
        cfg = self.cfg
        registry = [
            Step(1, "Install Helm", components.install_helm),
            Step(2, "Add and update Helm repositories", components.add_helm_repos),
            Step(3, "Install local-path storage provisioner", components.install_local_path_provisioner),
            Step(4, "Deploy cert-manager", lambda: components.install_cert_manager(cfg),
                 ("cert_version",)),
            Step(5, "Create Let's Encrypt ClusterIssuer", lambda: components.create_letsencrypt_issuer(cfg),
                 ("email",)),
            Step(6, "Deploy Rancher Manager", lambda: components.install_rancher(cfg),
                 ("rancher_version", "rancher_url", "email", "default_pass")),
            Step(7, "Create S3 credentials secret", lambda: components.create_s3_secret(cfg),
                 ("s3_access_key", "s3_secret_key")),
            Step(8, "Deploy Rancher Backup CRDs", components.install_backup_crds),
            Step(9, "Deploy Rancher Backup", lambda: components.install_backup(cfg),
                 ("s3_region", "s3_bucket_name", "s3_endpoint")),
            Step(10, "Create backup encryption config secret", lambda: components.create_encryption_secret(cfg)),
            Step(11, "Deploy CIS benchmark", components.install_cis_benchmark),
            Step(12, "Deploy Harbor registry", lambda: components.install_harbor(cfg),
                 ("harbor_url", "domain", "default_pass")),
            Step(13, "Create AWS cloud credentials", lambda: components.create_aws_credentials(cfg),
                 ("aws_default_region", "aws_access_key", "aws_secret_key")),
            Step(14, "Add cluster-template chart catalog", components.add_cluster_template_repo),
            Step(15, "Wait for Rancher Manager", self._wait_for_rancher, _API_FIELDS),
            Step(16, "Acquire API bearer token", self._acquire_token, _API_FIELDS),
            Step(17, "Set agent-tls-mode to System Store",
                 lambda: ensure_agent_tls_mode(self.api, self.authenticator), _API_FIELDS),
            Step(18, "Create demo user with global role",
                 lambda: ensure_demo_user(cfg, self.api, self.authenticator), _API_FIELDS),
            Step(19, "Create and import downstream clusters", self._provision,
                 _API_FIELDS + ("rancher_version", "dsc_count")),
        ]
        steps.check_registry(registry)
        return registry


def build_steps(cfg: RunConfig) -> list[Step]:
    """Build the lab registry for *cfg* without running anything."""
    return LabRun(cfg).build_steps()


# ============================================================================
# Internal helpers
# ============================================================================


def _check_prerequisites(starting_step: int) -> None:
    """Check the CLI tools needed by the steps that will run.

    Args:
        starting_step: First step ordinal to execute.

    Raises:
        ActionFailed: If a required tool is missing.
    """
    prereqs = []
    if starting_step <= LAST_CLUSTER_STEP:
        prereqs.append("kubectl")
    # Step 1 installs helm itself.
    if 1 < starting_step <= LAST_HELM_STEP:
        prereqs.append("helm")
    if not prereqs:
        return
    console.print(Panel.fit("Checking prerequisites", style="bold blue"))
    for cmd in prereqs:
        require_command(cmd)
    console.print("[green]✅ All required tools are available[/green]")


def print_import_commands(results: list[ImportCommandSet]) -> None:
    """Print the import commands collected during the run.

    Args:
        results: Import command sets, in ascending cluster index order.
    """
    if not results:
        return
    console.print(Panel.fit("Downstream cluster import commands", style="bold blue"))
    for commands in results:
        for line in commands.lines():
            console.print(line, markup=False, highlight=False, soft_wrap=True)
        console.print()


def _print_failures(failures: list[tuple[str, str]]) -> None:
    for name, reason in failures:
        console.print(f"[red]❌ {name}: {reason}[/red]")


# ============================================================================
# Public API
# ============================================================================


def run_lab(cfg: RunConfig, api: RancherApi | None = None,
            sleep: Callable[[float], None] = time.sleep) -> ProvisionReport | None:
    """Run the lab workflow from ``cfg.starting_step`` to the last step.

    Import commands gathered before a failure are still printed.

    Args:
        cfg: Validated configuration.
        api: Management API client override, or None to build one.
        sleep: Sleep function override, used by tests.

    Returns:
        The provisioning report when the cluster step ran, else None.

    Raises:
        LabError: If any step fails (wrapped in StepFailed) or a tool is missing.
    """
    lab = LabRun(cfg, api=api, sleep=sleep)
    registry = lab.build_steps()
    _check_prerequisites(cfg.starting_step)
    try:
        steps.run(registry, cfg.starting_step)
    finally:
        if lab.report is not None:
            print_import_commands(lab.report.results)
            _print_failures(lab.report.failures)
    return lab.report
