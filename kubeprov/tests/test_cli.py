import pytest
import yaml
from typer.testing import CliRunner

from kubeprov.cli import app
from kubeprov.commands import common, join, reset, status
from kubeprov.exceptions import CommandError, NotRootError
from kubeprov.modules.models import ExistingClusterAction, NodeRole, WorkflowContext

from .conftest import JOIN_COMMAND, MASTER_IP, FakeExecutor, write_admin_conf

runner = CliRunner()


class StubProvisioner:
    def __init__(self, outcome):
        self.outcome = outcome
        self.roles = []

    def run(self, role):
        self.roles.append(role)
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


@pytest.fixture
def config_file(tmp_path, paths):
    path = tmp_path / "kubeprov.yaml"
    path.write_text(yaml.safe_dump({
        "os_family": "fedora",
        "paths": {name: str(value) for name, value in paths.model_dump().items()},
    }))
    return path


@pytest.fixture
def fake_executor(monkeypatch):
    executor = FakeExecutor().respond(("pgrep",), 1)
    monkeypatch.setattr(common, "get_executor", lambda: executor)
    return executor


def use_provisioner(monkeypatch, outcome):
    stub = StubProvisioner(outcome)
    monkeypatch.setattr(common, "get_provisioner", lambda config=None: stub)
    return stub


def test_help():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    for group in ("run", "reset", "join", "status", "config", "detect"):
        assert group in result.output


def test_run_commands_exist():
    result = runner.invoke(app, ["run", "--help"])
    assert "master" in result.output
    assert "worker" in result.output


def test_run_master(monkeypatch):
    stub = use_provisioner(monkeypatch, WorkflowContext(role=NodeRole.MASTER))
    result = runner.invoke(app, ["run", "master"])
    assert result.exit_code == 0
    assert stub.roles == [NodeRole.MASTER]


def test_run_worker(monkeypatch):
    stub = use_provisioner(monkeypatch, WorkflowContext(role=NodeRole.WORKER))
    assert runner.invoke(app, ["run", "worker"]).exit_code == 0
    assert stub.roles == [NodeRole.WORKER]


def test_abort_exits_cleanly(monkeypatch):
    use_provisioner(monkeypatch, WorkflowContext(role=NodeRole.MASTER, action=ExistingClusterAction.ABORT))
    assert runner.invoke(app, ["run", "master"]).exit_code == 0


def test_not_root(monkeypatch):
    use_provisioner(monkeypatch, NotRootError())
    result = runner.invoke(app, ["run", "master"])
    assert result.exit_code == 1
    assert "[ERROR] Please run as root or with sudo" in result.output


def test_failed_command_exit_code(monkeypatch):
    use_provisioner(monkeypatch, CommandError(["kubeadm", "init"], 3, "preflight errors"))
    result = runner.invoke(app, ["run", "master"])
    assert result.exit_code == 3
    assert "kubeadm init" in result.output


def test_config_show(config_file):
    result = runner.invoke(app, ["--config", str(config_file), "config", "show"])
    assert result.exit_code == 0
    data = yaml.safe_load(result.output)
    assert data["os_family"] == "fedora"
    assert data["kubernetes"]["pod_network_cidr"] == "10.244.0.0/16"


def test_missing_config_file(tmp_path):
    result = runner.invoke(app, ["-c", str(tmp_path / "nope.yaml"), "config", "show"])
    assert result.exit_code == 1


def test_config_init(tmp_path):
    target = tmp_path / "etc" / "config.yaml"
    result = runner.invoke(app, ["config", "init", "--path", str(target)])
    assert result.exit_code == 0
    assert yaml.safe_load(target.read_text())["network"]["calico_version"] == "v3.26.1"

    assert runner.invoke(app, ["config", "init", "--path", str(target)]).exit_code == 1
    assert runner.invoke(app, ["config", "init", "--path", str(target), "--overwrite"]).exit_code == 0


def test_config_validate(tmp_path):
    good = tmp_path / "good.yaml"
    good.write_text("kubernetes:\n  version: v1.29\n")
    bad = tmp_path / "bad.yaml"
    bad.write_text("kubernetes:\n  version: latest\n")

    result = runner.invoke(app, ["config", "validate", str(good)])
    assert result.exit_code == 0
    assert "OK" in result.output
    assert runner.invoke(app, ["config", "validate", str(bad)]).exit_code == 1


def test_detect_clean_host(config_file, fake_executor):
    result = runner.invoke(app, ["-c", str(config_file), "detect"])
    assert result.exit_code == 0
    assert "No existing cluster found" in result.output


def test_detect_existing(config_file, fake_executor, paths):
    write_admin_conf(paths)
    result = runner.invoke(app, ["-c", str(config_file), "detect"])
    assert result.exit_code == 0
    assert "Existing cluster found" in result.output
    assert str(paths.admin_conf) in result.output


def test_reset_node_confirmed(config_file, fake_executor, paths, monkeypatch):
    monkeypatch.setattr(reset, "ensure_root", lambda: None)
    write_admin_conf(paths)
    result = runner.invoke(app, ["-c", str(config_file), "reset", "node"], input="YES\n")
    assert result.exit_code == 0
    assert fake_executor.ran("kubeadm", "reset", "-f")


def test_reset_node_cancelled(config_file, fake_executor, paths, monkeypatch):
    monkeypatch.setattr(reset, "ensure_root", lambda: None)
    write_admin_conf(paths)
    result = runner.invoke(app, ["-c", str(config_file), "reset", "node"], input="yes\n")
    assert result.exit_code == 0
    assert "Reset cancelled." in result.output
    assert not fake_executor.ran("kubeadm", "reset")


def test_reset_node_nothing_to_do(config_file, fake_executor, monkeypatch):
    monkeypatch.setattr(reset, "ensure_root", lambda: None)
    result = runner.invoke(app, ["-c", str(config_file), "reset", "node"])
    assert result.exit_code == 0
    assert not fake_executor.ran("kubeadm")


def test_reset_node_force(config_file, fake_executor, monkeypatch):
    monkeypatch.setattr(reset, "ensure_root", lambda: None)
    result = runner.invoke(app, ["-c", str(config_file), "reset", "node", "--force"])
    assert result.exit_code == 0
    assert fake_executor.ran("kubeadm", "reset", "-f")


def test_reset_node_failure_exit_code(config_file, fake_executor, monkeypatch):
    monkeypatch.setattr(reset, "ensure_root", lambda: None)
    fake_executor.respond(("kubeadm", "reset"), 2)
    result = runner.invoke(app, ["-c", str(config_file), "reset", "node", "--force"])
    assert result.exit_code == 2


def test_status_cluster_error(monkeypatch):
    monkeypatch.setattr(status, "cluster_summary", lambda path: {"error": "connection refused"})
    result = runner.invoke(app, ["status", "cluster", "--kubeconfig", "/tmp/admin.conf"])
    assert result.exit_code == 1
    assert "connection refused" in result.output


def test_status_cluster(monkeypatch):
    seen = []

    def summary(path):
        seen.append(path)
        return {"nodes": [], "pods": []}

    monkeypatch.setattr(status, "cluster_summary", summary)
    result = runner.invoke(app, ["status", "cluster"])
    assert result.exit_code == 0
    assert "(no nodes registered)" in result.output
    assert seen == ["/etc/kubernetes/admin.conf"]


def test_host_file_error_is_a_status_line(monkeypatch):
    use_provisioner(monkeypatch, FileNotFoundError(2, "No such file or directory", "/etc/kubernetes/admin.conf"))
    result = runner.invoke(app, ["run", "master"])
    assert result.exit_code == 1
    assert not isinstance(result.exception, FileNotFoundError)
    assert "[ERROR]" in result.output
    assert "/etc/kubernetes/admin.conf" in result.output


def test_join_command(config_file, fake_executor, paths, monkeypatch):
    monkeypatch.setattr(join, "ensure_root", lambda: None)
    fake_executor.respond(("hostname", "-I"), f"{MASTER_IP}\n")
    fake_executor.respond(("kubeadm", "token", "create"), JOIN_COMMAND + "\n")

    result = runner.invoke(app, ["-c", str(config_file), "join", "command"])

    assert result.exit_code == 0
    assert JOIN_COMMAND in result.output
    assert paths.join_command.read_text() == JOIN_COMMAND + "\n"
    assert f"Master Node IP: {MASTER_IP}" in paths.cluster_info.read_text()


def test_join_command_failure(config_file, fake_executor, monkeypatch):
    monkeypatch.setattr(join, "ensure_root", lambda: None)
    fake_executor.respond(("hostname", "-I"), f"{MASTER_IP}\n")
    fake_executor.respond(("kubeadm", "token", "create"), 1)

    result = runner.invoke(app, ["-c", str(config_file), "join", "command"])

    assert result.exit_code == 1
    assert "kubeadm token create" in result.output
