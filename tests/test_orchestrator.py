"""Tests for the convergent step runner.

Steps here are test doubles over an in-memory "machine" so every
check/apply call can be counted.
"""
import pytest

from deskboot.errors import Aborted, CommandFailed, StepFailed
from deskboot.orchestrator import RunEntry, plan_steps, run_steps
from deskboot.steps.base import Outcome, Step


class FakeMachine:
    def __init__(self, **state):
        self.state = dict(state)
        self.apply_calls: dict[str, int] = {}
        self.trace: list[str] = []

    def step(self, name, key=None, fatal=False, fail_with=None):
        key = key or name

        def check():
            return bool(self.state.get(key))

        def apply():
            self.apply_calls[name] = self.apply_calls.get(name, 0) + 1
            self.trace.append(name)
            if fail_with is not None:
                raise fail_with
            self.state[key] = True

        return Step(name=name, check=check, apply=apply, fatal=fatal)


def test_applies_unsatisfied_step():
    m = FakeMachine()
    result = run_steps([m.step("a")])
    assert result.ok
    assert result.exit_code == 0
    assert result.log.outcomes() == [Outcome.APPLIED]
    assert m.apply_calls == {"a": 1}


def test_skip_on_satisfied_never_calls_apply():
    m = FakeMachine(a=True)
    result = run_steps([m.step("a")])
    assert result.log.outcomes() == [Outcome.SATISFIED]
    assert m.apply_calls == {}


def test_idempotence_second_apply_never_invoked():
    m = FakeMachine()
    s = m.step("pkg.git")
    first = run_steps([s])
    assert s.check() is True
    second = run_steps([s])
    assert s.check() is True
    assert first.log.outcomes() == [Outcome.APPLIED]
    assert second.log.outcomes() == [Outcome.SATISFIED]
    assert m.apply_calls == {"pkg.git": 1}


def test_order_preserved_each_step_once():
    m = FakeMachine()
    result = run_steps([m.step("a"), m.step("b"), m.step("c")])
    assert m.trace == ["a", "b", "c"]
    assert result.log.names() == ["a", "b", "c"]
    assert [e.index for e in result.log] == [1, 2, 3]


def test_fatal_failure_stops_run():
    m = FakeMachine()
    steps = [
        m.step("s1"),
        m.step("s2", fatal=True, fail_with=StepFailed("boom")),
        m.step("s3"),
        m.step("s4"),
    ]
    result = run_steps(steps)
    assert not result.ok
    assert result.exit_code != 0
    assert m.trace == ["s1", "s2"]
    assert result.log.outcomes() == [Outcome.APPLIED, Outcome.FAILED]
    assert result.aborted.index == 2
    assert result.aborted.name == "s2"
    assert "aborted at step 2" in str(result.aborted)


def test_advisory_failure_continues():
    m = FakeMachine()
    steps = [
        m.step("s1"),
        m.step("s2", fatal=False, fail_with=StepFailed("boom")),
        m.step("s3"),
        m.step("s4"),
    ]
    result = run_steps(steps)
    assert result.ok
    assert result.exit_code == 0
    assert m.trace == ["s1", "s2", "s3", "s4"]
    assert result.log.outcomes() == [
        Outcome.APPLIED,
        Outcome.WARNED,
        Outcome.APPLIED,
        Outcome.APPLIED,
    ]
    assert [w.name for w in result.warnings] == ["s2"]
    assert "boom" in result.warnings[0].message


def test_non_bootstrap_exceptions_follow_policy():
    m = FakeMachine()
    result = run_steps([m.step("x", fail_with=OSError("disk full")), m.step("y")])
    assert result.ok
    assert result.log.outcomes() == [Outcome.WARNED, Outcome.APPLIED]


def test_check_that_raises_is_a_step_failure():
    def bad_check():
        raise RuntimeError("probe exploded")

    calls = []
    fatal = Step(name="probe", check=bad_check, apply=lambda: calls.append(1), fatal=True)
    result = run_steps([fatal])
    assert not result.ok
    assert calls == []
    assert result.log.outcomes() == [Outcome.FAILED]


def test_raise_on_abort():
    m = FakeMachine()
    with pytest.raises(Aborted) as exc_info:
        run_steps([m.step("a", fatal=True, fail_with=StepFailed("nope"))], raise_on_abort=True)
    assert exc_info.value.index == 1
    assert isinstance(exc_info.value.cause, StepFailed)


@pytest.mark.timeout(5)
def test_keyboard_interrupt_is_not_swallowed():
    def interrupt():
        raise KeyboardInterrupt

    with pytest.raises(KeyboardInterrupt):
        run_steps([Step(name="slow", check=lambda: False, apply=interrupt)])


def test_on_entry_receives_every_entry():
    m = FakeMachine(b=True)
    seen: list[RunEntry] = []
    run_steps([m.step("a"), m.step("b")], on_entry=seen.append)
    assert [(e.name, e.outcome) for e in seen] == [
        ("a", Outcome.APPLIED),
        ("b", Outcome.SATISFIED),
    ]


def test_duplicate_names_rejected():
    m = FakeMachine()
    with pytest.raises(ValueError, match="Duplicate step name"):
        run_steps([m.step("a"), m.step("a")])


def test_scenario_network_down_clone_fails():
    """git install and PATH entry succeed, the fatal clone fails."""
    m = FakeMachine(**{"install-pkg.git": True})
    steps = [
        m.step("install-pkg.git"),
        m.step("write-path-entry.local-bin"),
        m.step(
            "clone-repo",
            fatal=True,
            fail_with=CommandFailed("git clone https://example.invalid/dotfiles.git", 128, "Could not resolve host"),
        ),
    ]
    result = run_steps(steps)
    assert result.exit_code != 0
    assert result.log.outcomes() == [Outcome.SATISFIED, Outcome.APPLIED, Outcome.FAILED]
    assert "Could not resolve host" in result.log.entries[-1].message


def test_scenario_second_run_all_satisfied():
    m = FakeMachine()
    steps = [m.step("a"), m.step("b", fatal=True), m.step("c")]
    run_steps(steps)
    calls_after_first = dict(m.apply_calls)

    second = run_steps(steps)
    assert second.log.outcomes() == [Outcome.SATISFIED] * 3
    assert m.apply_calls == calls_after_first


def test_plan_never_applies():
    m = FakeMachine(a=True)

    def boom():
        raise RuntimeError("no network")

    steps = [m.step("a"), m.step("b"), Step(name="c", check=boom, apply=lambda: None, fatal=True)]
    items = plan_steps(steps)
    assert m.apply_calls == {}
    assert [(i.name, i.pending) for i in items] == [("a", False), ("b", True), ("c", True)]
    assert items[2].error == "no network"
    assert items[2].fatal is True


def test_on_entry_error_is_not_a_step_failure():
    m = FakeMachine(a=True)
    entries: list[RunEntry] = []

    def observer(entry):
        entries.append(entry)
        raise RuntimeError("observer broke")

    with pytest.raises(RuntimeError, match="observer broke"):
        run_steps([m.step("a", fatal=True)], on_entry=observer)
    assert [(e.name, e.outcome) for e in entries] == [("a", Outcome.SATISFIED)]
    assert m.apply_calls == {}
