import pytest

from conftest import FakeApi, make_cfg
from lab_manager import orchestrator, steps
from lab_manager.errors import ProvisioningIncomplete, StepFailed


@pytest.fixture
def printed(monkeypatch):
    captured = []
    monkeypatch.setattr(orchestrator, "print_import_commands", lambda results: captured.extend(results))
    return captured


def test_registry_has_nineteen_ordered_steps():
    registry = orchestrator.build_steps(make_cfg())
    assert [s.ordinal for s in registry] == list(range(1, 20))
    assert registry[-1].name == "Create and import downstream clusters"


def test_cluster_step_requirements():
    registry = orchestrator.build_steps(make_cfg())
    assert steps.required_fields(registry, 19) == {"rancher_url", "default_pass", "rancher_version", "dsc_count"}
    assert "cert_version" in steps.required_fields(registry, 1)


def test_api_steps_run_end_to_end(sleeper, printed):
    api = FakeApi()
    report = orchestrator.run_lab(make_cfg(starting_step=15), api=api, sleep=sleeper)
    assert api.login_calls == 1
    assert api.settings["agent-tls-mode"] == "System Store"
    assert "tshaker" in api.users
    assert [r.cluster_name for r in report.results] == ["ts-suse-demo-dsc-01", "ts-suse-demo-dsc-02"]
    assert printed == report.results


def test_failed_cluster_fails_the_run_but_prints_results(sleeper, printed):
    api = FakeApi(fail_create=["ts-suse-demo-dsc-02"])
    with pytest.raises(StepFailed) as exc:
        orchestrator.run_lab(make_cfg(starting_step=19), api=api, sleep=sleeper)
    assert exc.value.ordinal == 19
    assert isinstance(exc.value.__cause__, ProvisioningIncomplete)
    assert [r.cluster_name for r in printed] == ["ts-suse-demo-dsc-01"]


def test_starting_past_the_end_does_nothing(sleeper, printed):
    api = FakeApi()
    assert orchestrator.run_lab(make_cfg(starting_step=20), api=api, sleep=sleeper) is None
    assert api.probe_calls == 0
    assert printed == []


def test_prerequisites_follow_starting_step(monkeypatch):
    checked = []
    monkeypatch.setattr(orchestrator, "require_command", checked.append)
    orchestrator._check_prerequisites(1)
    assert checked == ["kubectl"]
    checked.clear()
    orchestrator._check_prerequisites(4)
    assert checked == ["kubectl", "helm"]
    checked.clear()
    orchestrator._check_prerequisites(15)
    assert checked == []
