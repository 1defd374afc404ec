#!/usr/bin/env python3
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

"""
rancher-lab - Provision a Rancher demo lab end to end.

Installs Helm, cert-manager, Rancher Manager, Rancher Backup, CIS benchmark
and Harbor on the current kube context, then configures Rancher through its
API and creates the requested downstream clusters. The import commands for
those clusters are printed at the end of the run.

Environment Variables:
    Every option can also be set through a LAB_* environment variable, e.g.
    - LAB_RANCHER_URL
    - LAB_DEFAULT_PASS
    - LAB_DSC_COUNT
    - LAB_POLL_INTERVAL_SECONDS (default: 10)
    - LAB_LOGIN_MAX_ATTEMPTS (default: 10)

Examples:
    # Full lab with two downstream clusters
    rancher-lab --cert-version v1.15.3 --email ops@example.com --default-pass s3cret \\
        --domain example.com --rancher-version v2.9.2 --rancher-url rancher.example.com ... --dsc-count 2

    # Resume at the downstream cluster step
    rancher-lab --starting-step 19 --rancher-url rancher.example.com --default-pass s3cret \\
        --rancher-version v2.9.2 --dsc-count 2

    # Show the step registry
    rancher-lab --list-steps
"""

from __future__ import annotations

import logging
import sys

import typer

from lab_manager import console, steps
from lab_manager.config import check_required, display_config, resolve_config
from lab_manager.errors import ConfigError, LabError
from lab_manager.orchestrator import build_steps, run_lab

app = typer.Typer(help="Provision a Rancher demo lab end to end.")


def _print_registry(registry: list[steps.Step]) -> None:
    for step in registry:
        needs = ", ".join(step.requires) or "-"
        console.print(f"  {step.ordinal:>2}  {step.name:<42} {needs}", highlight=False)


@app.command()
def main(
    starting_step: int | None = typer.Option(
        None, "--starting-step", "--starting_step", help="First step ordinal to execute (default: 1)"),
    list_steps: bool = typer.Option(
        False, "--list-steps", help="Print the step registry and exit"),
    # Platform components
    cert_version: str | None = typer.Option(
        None, "--cert-version", "--cert_version", help="cert-manager chart version, e.g. v1.15.3"),
    email: str | None = typer.Option(
        None, "--email", help="Contact email for Let's Encrypt and Rancher"),
    default_pass: str | None = typer.Option(
        None, "--default-pass", "--default_pass", help="Admin password for Rancher and Harbor"),
    domain: str | None = typer.Option(
        None, "--domain", help="Lab domain"),
    rancher_version: str | None = typer.Option(
        None, "--rancher-version", "--rancher_version", help="Rancher Manager chart version, e.g. v2.9.2"),
    rancher_url: str | None = typer.Option(
        None, "--rancher-url", "--rancher_url", help="Rancher Manager hostname, without scheme"),
    # Backup
    s3_access_key: str | None = typer.Option(
        None, "--s3-access-key", "--s3_access_key", help="S3 access key for Rancher Backup"),
    s3_secret_key: str | None = typer.Option(
        None, "--s3-secret-key", "--s3_secret_key", help="S3 secret key for Rancher Backup"),
    s3_region: str | None = typer.Option(
        None, "--s3-region", "--s3_region", help="S3 bucket region"),
    s3_bucket_name: str | None = typer.Option(
        None, "--s3-bucket-name", "--s3_bucket_name", help="S3 bucket name"),
    s3_endpoint: str | None = typer.Option(
        None, "--s3-endpoint", "--s3_endpoint", help="S3 endpoint hostname, without scheme"),
    # Harbor and AWS
    harbor_url: str | None = typer.Option(
        None, "--harbor-url", "--harbor_url", help="Harbor hostname, without scheme"),
    aws_default_region: str | None = typer.Option(
        None, "--aws-default-region", "--aws_default_region", help="Default region for AWS cloud credentials"),
    aws_access_key: str | None = typer.Option(
        None, "--aws-access-key", "--aws_access_key", help="AWS access key"),
    aws_secret_key: str | None = typer.Option(
        None, "--aws-secret-key", "--aws_secret_key", help="AWS secret key"),
    # Downstream clusters
    dsc_count: int | None = typer.Option(
        None, "--dsc-count", "--dsc_count", help="Number of downstream clusters to create (1-5)"),
    cluster_prefix: str | None = typer.Option(
        None, "--cluster-prefix", help="Downstream cluster name prefix (default: ts-suse-demo-dsc)"),
    # API tuning
    admin_username: str | None = typer.Option(
        None, "--admin-username", help="Rancher admin user (default: admin)"),
    demo_username: str | None = typer.Option(
        None, "--demo-username", help="Demo user to create (default: tshaker)"),
    poll_interval_seconds: float | None = typer.Option(
        None, "--poll-interval", help="Seconds between readiness and login attempts (default: 10)"),
    login_max_attempts: int | None = typer.Option(
        None, "--login-max-attempts", help="Login attempt budget (default: 10)"),
    insecure: bool = typer.Option(
        False, "--insecure", help="Skip TLS verification of the Rancher Manager API"),
) -> None:
    """Provision a Rancher demo lab.

    Runs every step from --starting-step onward. Only the options needed by
    those steps are required; all supplied values are validated before the
    first command runs.
    """
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        cfg = resolve_config(
            starting_step=starting_step,
            cert_version=cert_version,
            email=email,
            default_pass=default_pass,
            domain=domain,
            rancher_version=rancher_version,
            rancher_url=rancher_url,
            s3_access_key=s3_access_key,
            s3_secret_key=s3_secret_key,
            s3_region=s3_region,
            s3_bucket_name=s3_bucket_name,
            s3_endpoint=s3_endpoint,
            harbor_url=harbor_url,
            aws_default_region=aws_default_region,
            aws_access_key=aws_access_key,
            aws_secret_key=aws_secret_key,
            dsc_count=dsc_count,
            cluster_prefix=cluster_prefix,
            admin_username=admin_username,
            demo_username=demo_username,
            poll_interval_seconds=poll_interval_seconds,
            login_max_attempts=login_max_attempts,
            verify_tls=False if insecure else None,
        )
        registry = build_steps(cfg)
        if list_steps:
            _print_registry(registry)
            raise typer.Exit()
        fields = steps.required_fields(registry, cfg.starting_step)
        check_required(cfg, fields)
    except ConfigError as err:
        raise typer.BadParameter(str(err)) from err

    display_config(cfg, fields)

    try:
        run_lab(cfg)
    except LabError as e:
        console.print(f"[red]❌ {e}[/red]")
        sys.exit(1)
    console.print("[green]✅ Rancher lab provisioning complete[/green]")


if __name__ == "__main__":
    app()
