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

"""Helm, cert-manager, Rancher, backup, CIS, Harbor, and credential installation."""

from __future__ import annotations

import yaml

from lab_manager import console
from lab_manager.config import RunConfig
from lab_manager.constants import (
    AWS_CREDS_DRIVER,
    AWS_CREDS_DRIVER_ANNOTATION,
    AWS_CREDS_SECRET_NAME,
    CLUSTER_ISSUER_NAME,
    CLUSTER_TEMPLATE_REPO_NAME,
    ENCRYPTION_CONFIG_FILE,
    ENCRYPTION_SECRET_NAME,
    HARBOR_TLS_SECRET,
    HELM_CHART_BACKUP,
    HELM_CHART_BACKUP_CRD,
    HELM_CHART_CERT_MANAGER,
    HELM_CHART_CIS,
    HELM_CHART_CIS_CRD,
    HELM_CHART_HARBOR,
    HELM_CHART_RANCHER,
    HELM_RELEASE_BACKUP,
    HELM_RELEASE_BACKUP_CRD,
    HELM_RELEASE_CERT_MANAGER,
    HELM_RELEASE_CIS,
    HELM_RELEASE_CIS_CRD,
    HELM_RELEASE_HARBOR,
    HELM_RELEASE_RANCHER,
    INGRESS_CLASS,
    NS_CATTLE_GLOBAL_DATA,
    NS_CATTLE_RESOURCES,
    NS_CATTLE_SYSTEM,
    NS_CERT_MANAGER,
    NS_CIS_OPERATOR,
    NS_DEFAULT,
    NS_FLEET_LOCAL,
    NS_HARBOR,
    S3_SECRET_NAME,
    STORAGE_CLASS_LOCAL_PATH,
    dep_value,
)
from lab_manager.executor import bash, command_exists, helm, kubectl


def set_args(values: dict[str, object]) -> list[str]:
    """Flatten ``{key: value}`` into ``["--set", "key=value", ...]`` for helm.

    Booleans are rendered lowercase so helm parses them as YAML booleans.
    """
    args: list[str] = []
    for key, value in values.items():
        rendered = str(value).lower() if isinstance(value, bool) else str(value)
        args.extend(["--set", f"{key}={rendered}"])
    return args


def helm_install(release: str, chart: str, namespace: str, *,
                 version: str | None = None, values: dict[str, object] | None = None) -> None:
    """Install or upgrade a chart and wait for it, creating the namespace if needed."""
    args = ["upgrade", "--install", "--wait", release, chart, "--namespace", namespace, "--create-namespace"]
    if version:
        args += ["--version", version]
    args += set_args(values or {})
    helm(f"Deploying {release} ({chart}) into {namespace}", *args)


def apply_manifest(description: str, manifest: dict) -> None:
    """Render *manifest* with PyYAML and pipe it to ``kubectl apply -f -``."""
    kubectl(description, "apply", "-f", "-", stdin=yaml.safe_dump(manifest, default_flow_style=False))


# ============================================================================
# Helm tooling
# ============================================================================

def install_helm() -> None:
    """Install the helm CLI with the upstream installer script, unless already present."""
    if command_exists("helm"):
        console.print("[yellow]   helm is already installed, skipping[/yellow]")
        return
    installer = dep_value("helm", "installer")
    bash("Installing Helm", f"curl -fsSL {installer} | bash -s --")


def add_helm_repos() -> None:
    """Add (or refresh) every chart repository listed in dependencies.yaml, then update."""
    repos: dict[str, str] = dep_value("helm", "repos", default={})
    for name, url in repos.items():
        helm(f"Adding Helm repo {name} ({url})", "repo", "add", name, url, "--force-update")
    helm("Updating Helm repos", "repo", "update")


# ============================================================================
# Storage and certificates
# ============================================================================

def install_local_path_provisioner() -> None:
    version = dep_value("local_path_provisioner", "version")
    manifest = dep_value("local_path_provisioner", "manifest").format(version=version)
    kubectl(f"Installing local-path storage provisioner {version}", "apply", "-f", manifest)


def install_cert_manager(cfg: RunConfig) -> None:
    console.print(f"[yellow]Version: {cfg.cert_version}[/yellow]")
    helm_install(HELM_RELEASE_CERT_MANAGER, HELM_CHART_CERT_MANAGER, NS_CERT_MANAGER,
                 version=cfg.cert_version, values={"installCRDs": True})


def letsencrypt_issuer_manifest(email: str) -> dict:
    return {
        "apiVersion": "cert-manager.io/v1",
        "kind": "ClusterIssuer",
        "metadata": {"name": CLUSTER_ISSUER_NAME},
        "spec": {
            "acme": {
                "server": dep_value("letsencrypt", "server"),
                "email": email,
                "privateKeySecretRef": {"name": CLUSTER_ISSUER_NAME},
                "solvers": [{"http01": {"ingress": {"class": INGRESS_CLASS}}}],
            }
        },
    }


def create_letsencrypt_issuer(cfg: RunConfig) -> None:
    apply_manifest("Creating Let's Encrypt ClusterIssuer", letsencrypt_issuer_manifest(cfg.email))


# ============================================================================
# Rancher Manager
# ============================================================================

def install_rancher(cfg: RunConfig) -> None:
    console.print(f"[yellow]Version: {cfg.rancher_version}, hostname: {cfg.rancher_url}[/yellow]")
    helm_install(HELM_RELEASE_RANCHER, HELM_CHART_RANCHER, NS_CATTLE_SYSTEM,
                 version=cfg.rancher_version,
                 values={
                     "replicas": 1,
                     "hostname": cfg.rancher_url,
                     "ingress.tls.source": "letsEncrypt",
                     "letsEncrypt.email": cfg.email,
                     "bootstrapPassword": cfg.default_pass,
                 })


# ============================================================================
# Rancher Backup
# ============================================================================

def s3_secret_manifest(access_key: str, secret_key: str) -> dict:
    return {
        "apiVersion": "v1",
        "kind": "Secret",
        "type": "Opaque",
        "metadata": {"name": S3_SECRET_NAME, "namespace": NS_DEFAULT},
        "stringData": {"accessKey": access_key, "secretKey": secret_key},
    }


def create_s3_secret(cfg: RunConfig) -> None:
    apply_manifest("Creating S3 credentials secret",
                   s3_secret_manifest(cfg.s3_access_key, cfg.s3_secret_key))


def install_backup_crds() -> None:
    helm_install(HELM_RELEASE_BACKUP_CRD, HELM_CHART_BACKUP_CRD, NS_CATTLE_RESOURCES)


def backup_values(cfg: RunConfig) -> dict[str, object]:
    return {
        "s3.enabled": True,
        "s3.credentialSecretName": S3_SECRET_NAME,
        "s3.credentialSecretNamespace": NS_DEFAULT,
        "s3.region": cfg.s3_region,
        "s3.bucketName": cfg.s3_bucket_name,
        "s3.endpoint": cfg.s3_endpoint,
        "s3.insecureTLSSkipVerify": True,
        "persistence.enabled": False,
    }


def install_backup(cfg: RunConfig) -> None:
    helm_install(HELM_RELEASE_BACKUP, HELM_CHART_BACKUP, NS_CATTLE_RESOURCES, values=backup_values(cfg))


def encryption_secret_manifest(key: str) -> dict:
    encryption_config = {
        "apiVersion": "apiserver.config.k8s.io/v1",
        "kind": "EncryptionConfiguration",
        "resources": [{
            "resources": ["secrets"],
            "providers": [{"aesgcm": {"keys": [{"name": "key1", "secret": key}]}}],
        }],
    }
    return {
        "apiVersion": "v1",
        "kind": "Secret",
        "type": "Opaque",
        "metadata": {"name": ENCRYPTION_SECRET_NAME, "namespace": NS_CATTLE_RESOURCES},
        "stringData": {ENCRYPTION_CONFIG_FILE: yaml.safe_dump(encryption_config, default_flow_style=False)},
    }


def create_encryption_secret(cfg: RunConfig) -> None:
    apply_manifest("Creating backup encryptionconfig secret",
                   encryption_secret_manifest(cfg.backup_encryption_key))


# ============================================================================
# CIS benchmark and Harbor
# ============================================================================

def install_cis_benchmark() -> None:
    helm_install(HELM_RELEASE_CIS_CRD, HELM_CHART_CIS_CRD, NS_CIS_OPERATOR)
    helm_install(HELM_RELEASE_CIS, HELM_CHART_CIS, NS_CIS_OPERATOR)


def harbor_values(cfg: RunConfig) -> dict[str, object]:
    values: dict[str, object] = {
        "expose.ingress.hosts.core": cfg.harbor_url,
        "expose.ingress.hosts.notary": f"notary.{cfg.domain}",
        r"expose.ingress.annotations.cert-manager\.io/cluster-issuer": CLUSTER_ISSUER_NAME,
        "expose.tls.certSource": "secret",
        "expose.tls.secret.secretName": HARBOR_TLS_SECRET,
        "externalURL": f"https://{cfg.harbor_url}",
        "harborAdminPassword": cfg.default_pass,
    }
    for volume in ("registry", "jobservice.jobLog", "database", "redis", "trivy"):
        values[f"persistence.persistentVolumeClaim.{volume}.storageClass"] = STORAGE_CLASS_LOCAL_PATH
    return values


def install_harbor(cfg: RunConfig) -> None:
    console.print(f"[yellow]Hostname: {cfg.harbor_url}[/yellow]")
    helm_install(HELM_RELEASE_HARBOR, HELM_CHART_HARBOR, NS_HARBOR, values=harbor_values(cfg))


# ============================================================================
# Rancher integrations
# ============================================================================

def aws_credentials_manifest(region: str, access_key: str, secret_key: str) -> dict:
    return {
        "apiVersion": "v1",
        "kind": "Secret",
        "type": "Opaque",
        "metadata": {
            "name": AWS_CREDS_SECRET_NAME,
            "namespace": NS_CATTLE_GLOBAL_DATA,
            "annotations": {AWS_CREDS_DRIVER_ANNOTATION: AWS_CREDS_DRIVER},
        },
        "stringData": {
            "amazonec2credentialConfig-defaultRegion": region,
            "amazonec2credentialConfig-accessKey": access_key,
            "amazonec2credentialConfig-secretKey": secret_key,
        },
    }


def create_aws_credentials(cfg: RunConfig) -> None:
    apply_manifest("Creating AWS cloud credentials",
                   aws_credentials_manifest(cfg.aws_default_region, cfg.aws_access_key, cfg.aws_secret_key))


def add_cluster_template_repo() -> None:
    manifest = {
        "apiVersion": "catalog.cattle.io/v1",
        "kind": "ClusterRepo",
        "metadata": {"name": CLUSTER_TEMPLATE_REPO_NAME, "namespace": NS_FLEET_LOCAL},
        "spec": {"url": dep_value("cluster_templates", "url")},
    }
    apply_manifest("Adding cluster-template chart catalog", manifest)
