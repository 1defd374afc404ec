import pytest
import yaml

from conftest import make_cfg
from lab_manager import components


class Recorder:
    def __init__(self):
        self.calls = []

    def __call__(self, description, *args, **kwargs):
        self.calls.append((description, args, kwargs))
        return ""


@pytest.fixture
def helm(monkeypatch):
    rec = Recorder()
    monkeypatch.setattr(components, "helm", rec)
    return rec


@pytest.fixture
def kubectl(monkeypatch):
    rec = Recorder()
    monkeypatch.setattr(components, "kubectl", rec)
    return rec


def _applied(kubectl):
    return yaml.safe_load(kubectl.calls[-1][2]["stdin"])


def test_set_args_lowercases_booleans():
    assert components.set_args({"installCRDs": True, "replicas": 1}) == [
        "--set", "installCRDs=true", "--set", "replicas=1"]


def test_cert_manager_is_pinned_to_version(helm):
    components.install_cert_manager(make_cfg(cert_version="v1.15.3"))
    args = helm.calls[0][1]
    assert args[:4] == ("upgrade", "--install", "--wait", "cert-manager")
    assert "jetstack/cert-manager" in args
    assert args[args.index("--version") + 1] == "v1.15.3"
    assert "installCRDs=true" in args
    assert "--create-namespace" in args


def test_rancher_values(helm):
    components.install_rancher(make_cfg(email="ops@example.com"))
    args = helm.calls[0][1]
    assert "hostname=rancher.example.com" in args
    assert "letsEncrypt.email=ops@example.com" in args
    assert "bootstrapPassword=s3cret" in args
    assert args[args.index("--namespace") + 1] == "cattle-system"


def test_install_helm_skips_when_present(monkeypatch):
    ran = []
    monkeypatch.setattr(components, "command_exists", lambda cmd: True)
    monkeypatch.setattr(components, "bash", lambda *a: ran.append(a))
    components.install_helm()
    assert ran == []


def test_install_helm_runs_installer(monkeypatch):
    ran = []
    monkeypatch.setattr(components, "command_exists", lambda cmd: False)
    monkeypatch.setattr(components, "bash", lambda description, script: ran.append(script))
    components.install_helm()
    assert "get-helm-3" in ran[0]


def test_helm_repos_added_then_updated(helm):
    components.add_helm_repos()
    added = [c[1][2] for c in helm.calls[:-1]]
    assert "jetstack" in added and "rancher-prime" in added and "harbor" in added
    assert helm.calls[-1][1] == ("repo", "update")


def test_letsencrypt_issuer(kubectl):
    components.create_letsencrypt_issuer(make_cfg(email="ops@example.com"))
    manifest = _applied(kubectl)
    assert manifest["kind"] == "ClusterIssuer"
    assert manifest["spec"]["acme"]["email"] == "ops@example.com"


def test_aws_credentials_secret(kubectl):
    cfg = make_cfg(aws_default_region="us-east-1", aws_access_key="AKIA", aws_secret_key="shh")
    components.create_aws_credentials(cfg)
    manifest = _applied(kubectl)
    assert manifest["metadata"]["namespace"] == "cattle-global-data"
    assert manifest["metadata"]["annotations"] == {"provisioning.cattle.io/driver": "aws"}
    assert manifest["stringData"]["amazonec2credentialConfig-accessKey"] == "AKIA"


def test_encryption_secret_wraps_key(kubectl):
    components.create_encryption_secret(make_cfg(backup_encryption_key="a2V5"))
    manifest = _applied(kubectl)
    inner = yaml.safe_load(manifest["stringData"]["encryption-provider-config.yaml"])
    assert inner["resources"][0]["providers"][0]["aesgcm"]["keys"][0]["secret"] == "a2V5"


def test_backup_values_use_s3_settings():
    cfg = make_cfg(s3_region="eu-west-1", s3_bucket_name="lab-backups", s3_endpoint="s3.eu-west-1.amazonaws.com")
    values = components.backup_values(cfg)
    assert values["s3.region"] == "eu-west-1"
    assert values["s3.bucketName"] == "lab-backups"
    assert values["s3.credentialSecretName"] == "s3-creds"


def test_harbor_values(helm):
    components.install_harbor(make_cfg(harbor_url="harbor.example.com", domain="example.com"))
    args = helm.calls[0][1]
    assert "expose.ingress.hosts.core=harbor.example.com" in args
    assert "externalURL=https://harbor.example.com" in args
    assert "harborAdminPassword=s3cret" in args
