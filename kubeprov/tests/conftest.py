import logging
from pathlib import Path

import pytest

from kubeprov.config import NetworkConfig, PathsConfig, ProvisionConfig, set_config
from kubeprov.modules.executor import CommandExecutor, CommandResult
from kubeprov.modules.prompt import Prompter

MASTER_IP = "10.0.0.5"
JOIN_COMMAND = (
    f"kubeadm join {MASTER_IP}:6443 --token abcdef.0123456789abcdef "
    "--discovery-token-ca-cert-hash sha256:1234abcd"
)
ADMIN_CONF = "apiVersion: v1\nkind: Config\nclusters: []\n"
CONTAINERD_DEFAULT = (
    "version = 2\n"
    "[plugins.\"io.containerd.grpc.v1.cri\".containerd.runtimes.runc.options]\n"
    "  SystemdCgroup = false\n"
)


def _matches(key, args):
    """``key`` tokens appear in ``args`` in order, starting with the command name."""
    if not args or key[0] != args[0]:
        return False
    rest = iter(args[1:])
    return all(token in rest for token in key[1:])


class FakeExecutor(CommandExecutor):
    """Records every command and answers from canned responses.

    A response is a CommandResult, an int (return code), a str (stdout),
    None (success) or a callable taking the args and returning one of those.
    Several responses for one key are used in turn; the last one repeats.
    Unknown commands succeed with empty output.
    """

    def __init__(self, missing=()):
        self.calls = []
        self.inputs = {}
        self.missing = set(missing)
        self._rules = []

    def respond(self, key, *responses):
        self._rules.append((tuple(key), list(responses)))
        return self

    def which(self, name):
        return name not in self.missing

    def _execute(self, args, input=None, env=None, timeout=None):
        self.calls.append(list(args))
        if input is not None:
            self.inputs[" ".join(args)] = input

        rules = [rule for rule in self._rules if _matches(rule[0], args)]
        if not rules:
            return CommandResult(args=list(args))
        # Longest key wins, later rules break ties
        _, queue = max(reversed(rules), key=lambda rule: len(rule[0]))
        value = queue.pop(0) if len(queue) > 1 else queue[0]
        return self._coerce(value, list(args))

    def _coerce(self, value, args):
        if callable(value):
            value = value(args)
        if isinstance(value, CommandResult):
            return CommandResult(args=args, returncode=value.returncode,
                                 stdout=value.stdout, stderr=value.stderr)
        if value is None:
            return CommandResult(args=args)
        if isinstance(value, int):
            return CommandResult(args=args, returncode=value)
        return CommandResult(args=args, stdout=value)

    def ran(self, *key):
        return [call for call in self.calls if _matches(key, call)]

    def index(self, *key):
        """Position of the first call matching ``key``."""
        for i, call in enumerate(self.calls):
            if _matches(key, call):
                return i
        raise AssertionError(f"{' '.join(key)} was never run")


class FakePrompter(Prompter):
    """Scripted operator; an exhausted script reads as empty lines."""

    def __init__(self, lines=(), interactive=True):
        self.lines = list(lines)
        self.interactive = interactive
        self.prompts = []
        self.said = []

    def is_interactive(self):
        return self.interactive

    def read_line(self, prompt):
        self.prompts.append(prompt)
        return self.lines.pop(0) if self.lines else ""

    def say(self, message="", err=False):
        self.said.append(message)

    @property
    def output(self):
        return "\n".join(self.said)


class SleepRecorder:
    def __init__(self):
        self.calls = []

    def __call__(self, seconds):
        self.calls.append(seconds)


@pytest.fixture(autouse=True)
def reset_kubeprov_state():
    yield
    set_config(None)
    logger = logging.getLogger("kubeprov")
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def host_root(tmp_path):
    return tmp_path / "host"


@pytest.fixture
def paths(host_root):
    """Every host path relocated under a temporary root."""
    relocated = {
        name: host_root / str(default).lstrip("/")
        for name, default in PathsConfig().model_dump().items()
    }
    return PathsConfig(**relocated)


@pytest.fixture
def config(paths):
    return ProvisionConfig(
        os_family="fedora",
        paths=paths,
        network=NetworkConfig(settle_delay=10),
    )


@pytest.fixture
def environ(host_root):
    return {"HOME": str(host_root / "root"), "USER": "root"}


@pytest.fixture
def fstab(paths):
    paths.fstab.parent.mkdir(parents=True, exist_ok=True)
    paths.fstab.write_text(
        "UUID=1111 /     ext4 defaults 0 1\n"
        "/dev/sda2 none  swap sw       0 0\n"
    )
    return paths.fstab


def write_admin_conf(paths: PathsConfig) -> None:
    paths.admin_conf.parent.mkdir(parents=True, exist_ok=True)
    paths.admin_conf.write_text(ADMIN_CONF)


@pytest.fixture
def executor(paths):
    """A host that answers like a fresh Fedora server."""
    fake = FakeExecutor()
    fake.respond(("hostname",), "master-1\n")
    fake.respond(("hostname", "-I"), f"{MASTER_IP} 172.17.0.1 \n")
    fake.respond(("containerd", "config", "default"), CONTAINERD_DEFAULT)
    fake.respond(("systemctl", "is-active"), "active\n")
    fake.respond(("pgrep",), 1)
    fake.respond(("kubeadm", "token", "create"), JOIN_COMMAND + "\n")
    fake.respond(("kubectl", "version"), "Client Version: v1.28.2\nServer Version: v1.28.2\n")

    def kubeadm_init(args):
        write_admin_conf(paths)
        return "Your Kubernetes control-plane has initialized successfully!\n"

    fake.respond(("kubeadm", "init"), kubeadm_init)
    return fake


@pytest.fixture
def sleep():
    return SleepRecorder()


@pytest.fixture
def healthy_summary():
    return lambda kubeconfig: {
        "nodes": [{"name": "master-1", "status": "Ready", "roles": ["control-plane"], "version": "v1.28.2"}],
        "pods": [],
    }
