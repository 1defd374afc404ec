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

"""Constants, dependency loading, and dep_value helper."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml


def load_dependencies() -> dict:
    """Load chart repositories and upstream manifest URLs from dependencies.yaml.

    Returns:
        Parsed YAML content as a nested dictionary.
    """
    deps_file = Path(__file__).resolve().parent / "dependencies.yaml"
    with open(deps_file) as f:
        return yaml.safe_load(f)


DEPENDENCIES = load_dependencies()


def dep_value(*keys: str, default: Any = None) -> Any:
    """Safely traverse the DEPENDENCIES dict by key path.

    Args:
        *keys: Sequence of dictionary keys to traverse.
        default: Value to return if any key is missing.

    Returns:
        The value at the nested key path, or *default* if not found.
    """
    node = DEPENDENCIES
    for key in keys:
        if not isinstance(node, dict):
            return default
        node = node.get(key)
        if node is None:
            return default
    return node


# -- Validation patterns --
VERSION_PATTERN = r"^v\d+\.\d+\.\d+$"
REGION_PATTERN = r"^[a-z]{2}(-gov)?-[a-z]+-\d+$"
HOSTNAME_PATTERN = r"^[A-Za-z0-9]([A-Za-z0-9-]*[A-Za-z0-9])?(\.[A-Za-z0-9]([A-Za-z0-9-]*[A-Za-z0-9])?)*$"
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
MIN_DSC_COUNT = 1
MAX_DSC_COUNT = 5

# -- Retry and polling --
DEFAULT_LOGIN_MAX_ATTEMPTS = 10
DEFAULT_POLL_INTERVAL_SECONDS = 10
DEFAULT_TOKEN_FETCH_DELAY_SECONDS = 15
DEFAULT_TOKEN_FETCH_ATTEMPTS = 3
DEFAULT_REQUEST_TIMEOUT_SECONDS = 10

# -- Identity defaults --
DEFAULT_ADMIN_USERNAME = "admin"
DEFAULT_DEMO_USERNAME = "tshaker"
DEFAULT_DEMO_DISPLAY_NAME = "T Shaker"
DEFAULT_DEMO_GLOBAL_ROLE = "user"
DEFAULT_BACKUP_ENCRYPTION_KEY = "c2VjcmV0IGlzIHNlY3VyZQ=="
DEFAULT_CLUSTER_PREFIX = "ts-suse-demo-dsc"

# -- Management API paths --
API_LOGIN = "/v3-public/localProviders/local?action=login"
API_SETTINGS = "/v3/settings"
API_CLUSTERS = "/v3/clusters"
API_REGISTRATION_TOKENS = "/v3/clusterregistrationtoken"
API_USERS = "/v3/users"
API_GLOBAL_ROLE_BINDINGS = "/v3/globalrolebindings"
API_IMPORT = "/v3/import"

SETTING_AGENT_TLS_MODE = "agent-tls-mode"
AGENT_TLS_MODE_SYSTEM_STORE = "System Store"

# -- Namespaces --
NS_CERT_MANAGER = "cert-manager"
NS_CATTLE_SYSTEM = "cattle-system"
NS_CATTLE_RESOURCES = "cattle-resources-system"
NS_CATTLE_GLOBAL_DATA = "cattle-global-data"
NS_CIS_OPERATOR = "cis-operator-system"
NS_HARBOR = "harbor"
NS_FLEET_LOCAL = "fleet-local"
NS_DEFAULT = "default"

# -- Helm releases and charts --
HELM_RELEASE_CERT_MANAGER = "cert-manager"
HELM_CHART_CERT_MANAGER = "jetstack/cert-manager"
HELM_RELEASE_RANCHER = "rancher"
HELM_CHART_RANCHER = "rancher-prime/rancher"
HELM_RELEASE_BACKUP_CRD = "rancher-backup-crd"
HELM_CHART_BACKUP_CRD = "rancher-charts/rancher-backup-crd"
HELM_RELEASE_BACKUP = "rancher-backup"
HELM_CHART_BACKUP = "rancher-charts/rancher-backup"
HELM_RELEASE_CIS_CRD = "rancher-cis-benchmark-crd"
HELM_CHART_CIS_CRD = "rancher-charts/rancher-cis-benchmark-crd"
HELM_RELEASE_CIS = "rancher-cis-benchmark"
HELM_CHART_CIS = "rancher-charts/rancher-cis-benchmark"
HELM_RELEASE_HARBOR = "harbor"
HELM_CHART_HARBOR = "harbor/harbor"

# -- Kubernetes object names --
CLUSTER_ISSUER_NAME = "letsencrypt-prod"
S3_SECRET_NAME = "s3-creds"
ENCRYPTION_SECRET_NAME = "encryptionconfig"
ENCRYPTION_CONFIG_FILE = "encryption-provider-config.yaml"
AWS_CREDS_SECRET_NAME = "aws-creds"
AWS_CREDS_DRIVER_ANNOTATION = "provisioning.cattle.io/driver"
AWS_CREDS_DRIVER = "aws"
CLUSTER_TEMPLATE_REPO_NAME = "cluster-template"
HARBOR_TLS_SECRET = "tls-harbor"
STORAGE_CLASS_LOCAL_PATH = "local-path"
INGRESS_CLASS = "nginx"

# -- Agent join --
RANCHER_AGENT_IMAGE = "rancher/rancher-agent"
