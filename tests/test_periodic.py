import pytest

from dogflush.periodic import MultiTask, Periodic, Ticker
from fakes import wait_for


class Task:
    def __init__(self, name, log, fail_on=()):
        self.name = name
        self.log = log
        self.fail_on = fail_on

    def flush(self):
        self.log.append((self.name, "flush"))
        if "flush" in self.fail_on:
            raise RuntimeError(f"{self.name} flush")

    def close(self):
        self.log.append((self.name, "close"))
        if "close" in self.fail_on:
            raise RuntimeError(f"{self.name} close")


def test_ticker_calls_until_stopped():
    calls = []
    t = Ticker(lambda: calls.append(1), 0.01)
    assert wait_for(lambda: len(calls) >= 3)
    t.stop()
    t.join(1.0)
    assert not t.running
    n = len(calls)
    t.stop()  # idempotent, never blocks
    assert len(calls) == n


def test_ticker_routes_errors_to_sink_and_keeps_going():
    errors = []

    def boom():
        raise ValueError("nope")

    t = Ticker(boom, 0.01, on_error=errors.append)
    assert wait_for(lambda: len(errors) >= 2)
    t.stop()
    assert all(isinstance(e, ValueError) for e in errors)


def test_ticker_default_sink_discards():
    calls = []

    def boom():
        calls.append(1)
        raise ValueError("dropped")

    t = Ticker(boom, 0.01)
    assert wait_for(lambda: len(calls) >= 2)
    t.stop()
    t.join(1.0)
    assert not t.running


def test_ticker_rejects_bad_period():
    with pytest.raises(ValueError):
        Ticker(lambda: None, 0)


def test_periodic_flushes_then_closes_client():
    log = []
    p = Periodic(Task("a", log), 0.01)
    assert wait_for(lambda: ("a", "flush") in log)
    p.close()
    assert log[-1] == ("a", "close")


def test_multitask_tries_everyone_and_returns_first_error():
    log = []
    tasks = MultiTask([Task("a", log, fail_on=("flush", "close")), None, Task("b", log, fail_on=("flush",))])
    tasks.append(Task("c", log))

    with pytest.raises(RuntimeError, match="a flush"):
        tasks.flush()
    assert [n for n, op in log if op == "flush"] == ["a", "b", "c"]

    with pytest.raises(RuntimeError, match="a close"):
        tasks.close()
    assert [n for n, op in log if op == "close"] == ["a", "b", "c"]
    assert len(tasks) == 4


def test_multitask_empty_is_fine():
    MultiTask().flush()
    MultiTask([None]).close()
