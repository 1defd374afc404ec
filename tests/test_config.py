import pytest

from lab_manager.config import RunConfig, check_required, resolve_config
from lab_manager.errors import ConfigError


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("LAB_DSC_COUNT", "LAB_RANCHER_URL", "LAB_STARTING_STEP"):
        monkeypatch.delenv(name, raising=False)


@pytest.mark.parametrize("count", [0, 6, -1])
def test_dsc_count_out_of_range_is_rejected(count):
    with pytest.raises(ConfigError) as exc:
        resolve_config(dsc_count=count)
    assert "--dsc-count" in str(exc.value)


@pytest.mark.parametrize("count", [1, 5])
def test_dsc_count_bounds_are_accepted(count):
    assert resolve_config(dsc_count=count).dsc_count == count


@pytest.mark.parametrize("url", ["https://rancher.example.com", "rancher.example.com/", "rancher example"])
def test_hostname_with_scheme_or_path_is_rejected(url):
    with pytest.raises(ConfigError):
        resolve_config(rancher_url=url)


@pytest.mark.parametrize("version", ["2.9.2", "v2.9", "latest"])
def test_version_must_be_semver_with_v(version):
    with pytest.raises(ConfigError):
        resolve_config(rancher_version=version)


def test_region_pattern():
    assert resolve_config(s3_region="us-east-1").s3_region == "us-east-1"
    assert resolve_config(aws_default_region="us-gov-west-1").aws_default_region == "us-gov-west-1"
    with pytest.raises(ConfigError):
        resolve_config(s3_region="useast1")


def test_none_overrides_fall_back_to_env(monkeypatch):
    monkeypatch.setenv("LAB_DSC_COUNT", "3")
    assert resolve_config(dsc_count=None).dsc_count == 3
    assert resolve_config(dsc_count=4).dsc_count == 4


def test_config_is_frozen():
    cfg = resolve_config(dsc_count=2)
    with pytest.raises(Exception):
        cfg.dsc_count = 3


def test_base_url_uses_https():
    assert RunConfig(rancher_url="rancher.example.com").base_url == "https://rancher.example.com"


def test_check_required_lists_every_missing_flag():
    cfg = resolve_config(rancher_url="rancher.example.com")
    with pytest.raises(ConfigError) as exc:
        check_required(cfg, ["rancher_url", "dsc_count", "default_pass"])
    assert str(exc.value) == "Missing required arguments: --default-pass, --dsc-count"


def test_check_required_passes_when_all_present():
    cfg = resolve_config(rancher_url="rancher.example.com", dsc_count=1)
    check_required(cfg, ["rancher_url", "dsc_count"])
