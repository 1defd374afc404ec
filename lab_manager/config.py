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

"""Run configuration, resolution, and display."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Annotated, Any

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict
from rich.panel import Panel

from lab_manager import console
from lab_manager.constants import (
    DEFAULT_ADMIN_USERNAME,
    DEFAULT_BACKUP_ENCRYPTION_KEY,
    DEFAULT_CLUSTER_PREFIX,
    DEFAULT_DEMO_DISPLAY_NAME,
    DEFAULT_DEMO_USERNAME,
    DEFAULT_LOGIN_MAX_ATTEMPTS,
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_TOKEN_FETCH_ATTEMPTS,
    DEFAULT_TOKEN_FETCH_DELAY_SECONDS,
    EMAIL_PATTERN,
    HOSTNAME_PATTERN,
    MAX_DSC_COUNT,
    MIN_DSC_COUNT,
    REGION_PATTERN,
    VERSION_PATTERN,
)
from lab_manager.errors import ConfigError

Version = Annotated[str, Field(pattern=VERSION_PATTERN)]
Region = Annotated[str, Field(pattern=REGION_PATTERN)]
Hostname = Annotated[str, Field(pattern=HOSTNAME_PATTERN)]
Email = Annotated[str, Field(pattern=EMAIL_PATTERN)]
NonEmpty = Annotated[str, Field(min_length=1)]
ClusterCount = Annotated[int, Field(ge=MIN_DSC_COUNT, le=MAX_DSC_COUNT)]

SECRET_FIELDS = frozenset({"default_pass", "s3_access_key", "s3_secret_key", "aws_access_key",
                           "aws_secret_key", "backup_encryption_key"})


# ============================================================================
# Configuration class
# ============================================================================

class RunConfig(BaseSettings):
    """Provisioning parameters, auto-loaded from LAB_* env vars.

    Step parameters default to None; which of them must be present depends on
    the steps reachable from ``starting_step`` (see :func:`check_required`).

    Attributes:
        starting_step: First step ordinal to execute.
        cert_version: cert-manager Helm chart version.
        email: Contact email for Let's Encrypt and Rancher.
        default_pass: Administrative password for Rancher and Harbor.
        domain: Lab domain, used for the Harbor notary host.
        rancher_version: Rancher Manager chart version.
        rancher_url: Rancher Manager hostname (no scheme).
        s3_access_key: S3 access key for Rancher Backup.
        s3_secret_key: S3 secret key for Rancher Backup.
        s3_region: Region of the backup bucket.
        s3_bucket_name: Backup bucket name.
        s3_endpoint: S3 endpoint hostname (no scheme).
        harbor_url: Harbor hostname (no scheme).
        aws_default_region: Default region for AWS cloud credentials.
        aws_access_key: AWS access key for Rancher cloud credentials.
        aws_secret_key: AWS secret key for Rancher cloud credentials.
        dsc_count: Number of downstream clusters to create.
        admin_username: Rancher local admin user.
        demo_username: Standard user created for demos.
        demo_display_name: Display name of the demo user.
        backup_encryption_key: Base64 AES key for the backup encryption config.
        cluster_prefix: Prefix of downstream cluster names.
        login_max_attempts: Login attempt budget.
        poll_interval_seconds: Pause between readiness and login attempts.
        token_fetch_delay_seconds: Pause before reading registration tokens.
        token_fetch_attempts: Registration token read attempts.
        request_timeout_seconds: Per-request HTTP timeout.
        verify_tls: Whether to verify the management API certificate.
    """

    model_config = SettingsConfigDict(env_prefix="LAB_", extra="ignore", frozen=True)

    starting_step: int = 1

    cert_version: Version | None = None
    email: Email | None = None
    default_pass: NonEmpty | None = None
    domain: Hostname | None = None
    rancher_version: Version | None = None
    rancher_url: Hostname | None = None
    s3_access_key: NonEmpty | None = None
    s3_secret_key: NonEmpty | None = None
    s3_region: Region | None = None
    s3_bucket_name: NonEmpty | None = None
    s3_endpoint: Hostname | None = None
    harbor_url: Hostname | None = None
    aws_default_region: Region | None = None
    aws_access_key: NonEmpty | None = None
    aws_secret_key: NonEmpty | None = None
    dsc_count: ClusterCount | None = None

    admin_username: str = Field(default=DEFAULT_ADMIN_USERNAME, min_length=1)
    demo_username: str = Field(default=DEFAULT_DEMO_USERNAME, min_length=1)
    demo_display_name: str = DEFAULT_DEMO_DISPLAY_NAME
    backup_encryption_key: str = Field(default=DEFAULT_BACKUP_ENCRYPTION_KEY, min_length=1)
    cluster_prefix: str = Field(default=DEFAULT_CLUSTER_PREFIX, min_length=1)

    login_max_attempts: int = Field(default=DEFAULT_LOGIN_MAX_ATTEMPTS, ge=1)
    poll_interval_seconds: float = Field(default=DEFAULT_POLL_INTERVAL_SECONDS, ge=0)
    token_fetch_delay_seconds: float = Field(default=DEFAULT_TOKEN_FETCH_DELAY_SECONDS, ge=0)
    token_fetch_attempts: int = Field(default=DEFAULT_TOKEN_FETCH_ATTEMPTS, ge=1)
    request_timeout_seconds: float = Field(default=DEFAULT_REQUEST_TIMEOUT_SECONDS, gt=0)
    verify_tls: bool = True

    @property
    def base_url(self) -> str:
        return f"https://{self.rancher_url}"


# ============================================================================
# Config resolution
# ============================================================================

def _describe(err: ValidationError) -> str:
    parts = []
    for item in err.errors():
        field = ".".join(str(loc) for loc in item["loc"]) or "config"
        parts.append(f"--{field.replace('_', '-')}: {item['msg']}")
    return "; ".join(parts)


def resolve_config(**overrides: Any) -> RunConfig:
    """Merge CLI overrides, environment variables, and defaults into a RunConfig.

    Resolution priority: CLI arguments > LAB_* environment variables > defaults.

    Args:
        **overrides: CLI values keyed by field name; None means "not given".

    Returns:
        The validated, frozen configuration.

    Raises:
        ConfigError: If any supplied value is malformed.
    """
    given = {key: value for key, value in overrides.items() if value is not None}
    try:
        return RunConfig(**given)
    except ValidationError as err:
        raise ConfigError(_describe(err)) from err


def check_required(cfg: RunConfig, fields: Iterable[str]) -> None:
    """Ensure every field in *fields* is set and non-empty.

    Raises:
        ConfigError: Listing all missing fields.
    """
    missing = sorted(name for name in set(fields) if getattr(cfg, name) in (None, ""))
    if missing:
        flags = ", ".join(f"--{name.replace('_', '-')}" for name in missing)
        raise ConfigError(f"Missing required arguments: {flags}")


# ============================================================================
# Display
# ============================================================================

def _mask(name: str, value: Any) -> str:
    if value is None:
        return "(not set)"
    if name in SECRET_FIELDS:
        return "********"
    return str(value)


def display_config(cfg: RunConfig, fields: Iterable[str]) -> None:
    """Print only config relevant to the steps that will run.

    Args:
        cfg: Resolved configuration.
        fields: Field names used by the reachable steps.
    """
    console.print(Panel.fit("Configuration", style="bold blue"))
    console.print(f"  starting_step          : {cfg.starting_step}")
    for name in sorted(set(fields)):
        console.print(f"  {name:<23}: {_mask(name, getattr(cfg, name))}")
