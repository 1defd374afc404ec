import pytest

from lab_manager import steps
from lab_manager.errors import StepFailed
from lab_manager.steps import Step


def _registry(calls, count=5, fail_at=None):
    def action(n):
        def _run():
            calls.append(n)
            if n == fail_at:
                raise RuntimeError(f"step {n} exploded")
        return _run
    return [Step(n, f"step {n}", action(n), requires=(f"field_{n}",)) for n in range(1, count + 1)]


def test_run_past_last_step_is_a_noop():
    calls = []
    steps.run(_registry(calls), starting_step=6)
    assert calls == []


def test_run_executes_exact_subsequence():
    calls = []
    steps.run(_registry(calls), starting_step=3)
    assert calls == [3, 4, 5]


def test_run_from_first_step_executes_everything():
    calls = []
    steps.run(_registry(calls), starting_step=1)
    assert calls == [1, 2, 3, 4, 5]


def test_starting_step_below_one_runs_everything():
    calls = []
    steps.run(_registry(calls), starting_step=0)
    assert calls == [1, 2, 3, 4, 5]


def test_failing_step_stops_the_run():
    calls = []
    with pytest.raises(StepFailed) as exc:
        steps.run(_registry(calls, fail_at=2), starting_step=1)
    assert calls == [1, 2]
    assert exc.value.ordinal == 2
    assert exc.value.name == "step 2"
    assert isinstance(exc.value.__cause__, RuntimeError)


def test_required_fields_only_cover_reachable_steps():
    registry = _registry([])
    assert steps.required_fields(registry, 4) == {"field_4", "field_5"}
    assert steps.required_fields(registry, 9) == set()


def test_selected_sorts_by_ordinal():
    calls = []
    registry = list(reversed(_registry(calls)))
    assert [s.ordinal for s in steps.selected(registry, 2)] == [2, 3, 4, 5]


def test_check_registry_rejects_duplicates():
    noop = lambda: None  # noqa: E731
    with pytest.raises(ValueError):
        steps.check_registry([Step(1, "a", noop), Step(1, "b", noop)])


def test_check_registry_rejects_unsorted():
    noop = lambda: None  # noqa: E731
    with pytest.raises(ValueError):
        steps.check_registry([Step(2, "a", noop), Step(1, "b", noop)])
