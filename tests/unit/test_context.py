import threading

import pytest
from sqld import QueryContext, background
from sqld.exceptions import ExecutionCancelled


class FakeClock:

    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


def test_background():
    ctx = background()
    assert not ctx.done
    assert ctx.remaining() is None
    assert ctx.reason is None
    ctx.raise_if_done()


def test_cancel():
    ctx = QueryContext()
    ctx.cancel('client went away')
    assert ctx.cancelled
    assert ctx.done
    assert ctx.reason == 'client went away'
    with pytest.raises(ExecutionCancelled, match='query not executed: client went away'):
        ctx.raise_if_done()


def test_cancel_is_idempotent():
    ctx = QueryContext()
    ctx.cancel('first')
    ctx.cancel('second')
    assert ctx.reason == 'first'


def test_deadline():
    clock = FakeClock()
    ctx = QueryContext(timeout=5, clock=clock)
    assert ctx.remaining() == 5
    assert not ctx.expired

    clock.now += 5
    assert ctx.expired
    assert ctx.done
    assert ctx.remaining() == 0
    assert ctx.reason == 'deadline exceeded'
    with pytest.raises(ExecutionCancelled, match='deadline exceeded'):
        ctx.raise_if_done()


def test_watch_runs_hook_on_cancel():
    ctx = QueryContext()
    calls = []
    with ctx.watch(lambda: calls.append('cancel')):
        ctx.cancel()
    assert calls == ['cancel']


def test_watch_unregisters_hook():
    ctx = QueryContext()
    calls = []
    with ctx.watch(lambda: calls.append('cancel')):
        pass
    ctx.cancel()
    assert calls == []


def test_hook_taken_before_exit_is_inert():
    """A cancel already holding the hook when the block exits does not reach the driver"""
    ctx = QueryContext()
    calls = []
    with ctx.watch(lambda: calls.append('cancel')):
        in_flight = list(ctx._callbacks)
    for hook in in_flight:
        hook()
    assert calls == []


def test_watch_exit_waits_for_running_hook():
    ctx = QueryContext()
    started, release = threading.Event(), threading.Event()
    calls = []

    def slow_cancel():
        started.set()
        release.wait(timeout=5)
        calls.append('cancel')

    with ctx.watch(slow_cancel):
        canceller = threading.Thread(target=ctx.cancel)
        canceller.start()
        assert started.wait(timeout=5)
        threading.Timer(0.05, release.set).start()
    assert calls == ['cancel']
    canceller.join(timeout=5)


def test_watch_refuses_done_context():
    ctx = QueryContext()
    ctx.cancel()
    with pytest.raises(ExecutionCancelled), ctx.watch(lambda: None):
        pass


def test_watch_timer_fires():
    """The deadline timer cancels the context from another thread"""
    fired = threading.Event()
    ctx = QueryContext(timeout=0.05)
    with ctx.watch(fired.set):
        assert fired.wait(timeout=5)
    assert ctx.cancelled
    assert ctx.reason == 'deadline exceeded'


def test_failing_hook_is_logged(caplog):
    def hook():
        raise RuntimeError('boom')

    ctx = QueryContext()
    with ctx.watch(hook):
        ctx.cancel()
    assert ctx.cancelled
    assert 'Driver cancel hook failed: boom' in caplog.text


if __name__ == '__main__':
    __import__('pytest').main([__file__])
