import logging

import pytest

from kubeprov.config import PromptConfig
from kubeprov.modules.detector import (
    ExistingClusterResolver,
    ResolverState,
    detect_cluster,
    resolve_existing_cluster,
)
from kubeprov.modules.models import ClusterState, DetectionResult, ExistingClusterAction

from .conftest import FakeExecutor, FakePrompter, write_admin_conf

EXISTING = DetectionResult(state=ClusterState.EXISTING_FOUND, signals=["admin kubeconfig found"])


def resolve(lines, interactive=True, prompt=None):
    prompter = FakePrompter(lines, interactive=interactive)
    action = resolve_existing_cluster(prompter, prompt or PromptConfig(), EXISTING)
    return action, prompter


def test_no_cluster_on_clean_host(paths):
    executor = FakeExecutor().respond(("pgrep",), 1)
    result = detect_cluster(executor, paths)
    assert result.state == ClusterState.NO_CLUSTER
    assert not result.existing
    assert result.signals == []


def test_admin_conf_is_enough(paths):
    write_admin_conf(paths)
    executor = FakeExecutor().respond(("pgrep",), 1)
    result = detect_cluster(executor, paths)
    assert result.existing
    assert str(paths.admin_conf) in result.signals[0]


def test_apiserver_manifest_is_enough(paths):
    paths.apiserver_manifest.parent.mkdir(parents=True)
    paths.apiserver_manifest.write_text("kind: Pod\n")
    executor = FakeExecutor().respond(("pgrep",), 1)
    assert detect_cluster(executor, paths).existing


def test_running_apiserver_is_enough(paths):
    executor = FakeExecutor().respond(("pgrep",), 0)
    result = detect_cluster(executor, paths)
    assert result.existing
    assert executor.ran("pgrep", "-f", "kube-apiserver")


def test_use_existing_choice():
    action, prompter = resolve(["2"])
    assert action == ExistingClusterAction.USE_EXISTING
    assert len(prompter.prompts) == 1


def test_abort_choice():
    action, _ = resolve(["3"])
    assert action == ExistingClusterAction.ABORT


@pytest.mark.parametrize("word,expected", [
    ("use", ExistingClusterAction.USE_EXISTING),
    ("EXISTING", ExistingClusterAction.USE_EXISTING),
    ("abort", ExistingClusterAction.ABORT),
    ("q", ExistingClusterAction.ABORT),
    (" 3 ", ExistingClusterAction.ABORT),
])
def test_word_choices(word, expected):
    action, _ = resolve([word])
    assert action == expected


def test_reset_needs_exact_confirmation():
    action, prompter = resolve(["1", "YES"])
    assert action == ExistingClusterAction.RESET
    assert "YES" in prompter.prompts[1]


def test_wrong_confirmation_returns_to_menu(caplog):
    with caplog.at_level(logging.INFO, logger="kubeprov"):
        action, prompter = resolve(["reset", "yes", "3"])
    assert action == ExistingClusterAction.ABORT
    assert len(prompter.prompts) == 3
    assert "Reset cancelled." in caplog.text


def test_three_empty_reads_fall_back_to_existing():
    action, prompter = resolve([])
    assert action == ExistingClusterAction.USE_EXISTING
    assert len(prompter.prompts) == 3


def test_five_invalid_choices_fall_back_to_existing():
    action, prompter = resolve(["9", "foo", "x", "0", "??", "1"])
    assert action == ExistingClusterAction.USE_EXISTING
    assert len(prompter.prompts) == 5


def test_empty_reads_reset_after_a_real_answer():
    # two empties, an invalid answer, two empties: five failures, never three in a row
    action, prompter = resolve(["", "", "x", "", "", "1", "YES"])
    assert action == ExistingClusterAction.USE_EXISTING
    assert len(prompter.prompts) == 5


def test_repeated_cancelled_resets_terminate():
    action, prompter = resolve(["1", "no"] * 10)
    assert action == ExistingClusterAction.USE_EXISTING
    assert len(prompter.prompts) == 10


def test_non_interactive_never_prompts():
    action, prompter = resolve(["1", "YES"], interactive=False)
    assert action == ExistingClusterAction.USE_EXISTING
    assert prompter.prompts == []


def test_limits_come_from_config():
    action, prompter = resolve(["x", "y", "z"], prompt=PromptConfig(max_attempts=2))
    assert action == ExistingClusterAction.USE_EXISTING
    assert len(prompter.prompts) == 2


def test_custom_confirmation_literal():
    action, _ = resolve(["1", "DELETE"], prompt=PromptConfig(reset_confirmation="DELETE"))
    assert action == ExistingClusterAction.RESET


def test_resolver_states():
    resolver = ExistingClusterResolver()
    assert resolver.handle("1") == ResolverState.AWAITING_RESET_CONFIRM
    assert resolver.handle("") == ResolverState.AWAITING_CHOICE
    assert resolver.failed_attempts == 1
    assert resolver.consecutive_empty == 0
    assert resolver.handle("2") == ResolverState.RESOLVED
    assert resolver.reason == "operator choice"


def test_invalid_choice_sets_notice():
    resolver = ExistingClusterResolver()
    resolver.handle("banana")
    assert "banana" in resolver.notice
    resolver.handle("")
    assert resolver.notice is None


def test_resolver_refuses_input_after_decision():
    resolver = ExistingClusterResolver()
    resolver.handle("3")
    with pytest.raises(RuntimeError):
        resolver.handle("1")


def test_menu_lists_signals():
    _, prompter = resolve(["3"])
    assert "admin kubeconfig found" in prompter.output
    assert "Abort" in prompter.output
