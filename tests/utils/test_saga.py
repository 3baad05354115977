import pytest

from modcatalog.utils.exception import CompensationError
from modcatalog.utils.saga import Saga


def test_runs_steps_in_order() -> None:
    calls: list[str] = []
    saga = Saga("test")
    saga.add_step("one", lambda: calls.append("one") or 1)
    saga.add_step("two", lambda: calls.append("two") or 2)

    assert saga.run() == [1, 2]
    assert calls == ["one", "two"]
    assert [step.name for step in saga.steps] == ["one", "two"]


def test_failure_compensates_completed_steps_in_reverse() -> None:
    calls: list[str] = []

    def fail() -> None:
        raise ValueError("boom")

    saga = (
        Saga("test")
        .add_step("one", lambda: calls.append("do one"), lambda: calls.append("undo one"))
        .add_step("two", lambda: calls.append("do two"), lambda: calls.append("undo two"))
        .add_step("three", fail, lambda: calls.append("undo three"))
    )

    with pytest.raises(ValueError, match="boom"):
        saga.run()

    assert calls == ["do one", "do two", "undo two", "undo one"]


def test_steps_after_failure_do_not_run() -> None:
    calls: list[str] = []

    def fail() -> None:
        raise RuntimeError("first")

    saga = Saga("test").add_step("fail", fail).add_step("never", lambda: calls.append("x"))

    with pytest.raises(RuntimeError):
        saga.run()
    assert calls == []


def test_failed_compensation_raises_compensation_error() -> None:
    calls: list[str] = []

    def fail() -> None:
        raise ValueError("step failed")

    def broken_undo() -> None:
        raise OSError("undo failed")

    saga = (
        Saga("import")
        .add_step("one", lambda: None, lambda: calls.append("undo one"))
        .add_step("two", lambda: None, broken_undo)
        .add_step("three", fail)
    )

    with pytest.raises(CompensationError) as exc_info:
        saga.run()

    error = exc_info.value
    assert isinstance(error.original, ValueError)
    assert [name for name, _ in error.failures] == ["two"]
    assert isinstance(error.__cause__, ValueError)
    # Remaining compensations still run
    assert calls == ["undo one"]
