import pytest
import sh

from lab_manager import executor
from lab_manager.errors import ActionFailed


class FakeSh:
    ErrorReturnCode = sh.ErrorReturnCode
    CommandNotFound = sh.CommandNotFound

    def __init__(self, on_path=("helm", "kubectl")):
        self.calls = []
        self.on_path = set(on_path)

    def helm(self, *args, **kwargs):
        self.calls.append(("helm", args, kwargs))
        return "release deployed"

    def kubectl(self, *args, **kwargs):
        self.calls.append(("kubectl", args, kwargs))
        return "configured"

    def bash(self, *args, **kwargs):
        self.calls.append(("bash", args, kwargs))
        return ""

    def which(self, cmd):
        if cmd not in self.on_path:
            raise sh.ErrorReturnCode_1("which " + cmd, b"", b"")
        return f"/usr/local/bin/{cmd}"


@pytest.fixture
def fake_sh(monkeypatch):
    fake = FakeSh()
    monkeypatch.setattr(executor, "sh", fake)
    return fake


def test_invoke_returns_output():
    assert executor.invoke("Doing things", lambda: b"all good\n") == "all good\n"


def test_invoke_wraps_non_zero_exit():
    def failing():
        raise sh.ErrorReturnCode_1("helm install", b"partial output", b"Error: boom")

    with pytest.raises(ActionFailed) as exc:
        executor.invoke("Deploying chart", failing)
    assert exc.value.description == "Deploying chart"
    assert "partial output" in exc.value.output
    assert "Error: boom" in exc.value.output


def test_invoke_wraps_missing_command():
    def missing():
        raise sh.CommandNotFound("helm")

    with pytest.raises(ActionFailed):
        executor.invoke("Deploying chart", missing)


def test_helm_merges_stderr(fake_sh):
    executor.helm("Updating repos", "repo", "update")
    name, args, kwargs = fake_sh.calls[0]
    assert (name, args) == ("helm", ("repo", "update"))
    assert kwargs == {"_err_to_out": True}


def test_kubectl_pipes_stdin(fake_sh):
    executor.kubectl("Applying", "apply", "-f", "-", stdin="kind: Secret\n")
    _, args, kwargs = fake_sh.calls[0]
    assert args == ("apply", "-f", "-")
    assert kwargs["_in"] == "kind: Secret\n"


def test_bash_runs_script(fake_sh):
    executor.bash("Installing", "echo hi")
    assert fake_sh.calls[0][1] == ("-c", "echo hi")


def test_require_command(fake_sh):
    executor.require_command("kubectl")
    assert executor.command_exists("helm")
    assert not executor.command_exists("docker")
    with pytest.raises(ActionFailed) as exc:
        executor.require_command("docker")
    assert "docker" in exc.value.output
