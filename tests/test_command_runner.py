import threading

from snippy.command_runner import CommandRunner


class Collector:
    def __init__(self):
        self.chunks = []
        self.completions = []
        self.done = threading.Event()

    def on_output(self, chunk):
        self.chunks.append(chunk)

    def on_complete(self, success, returncode):
        self.completions.append((success, returncode))
        self.done.set()


def test_run_streams_output_in_order_and_completes():
    runner = CommandRunner(shell="/bin/sh")
    collector = Collector()
    res = runner.run("echo one; echo two 1>&2; echo three", collector.on_output, collector.on_complete)
    assert res["status"] == "success"
    assert collector.done.wait(10)

    assert "".join(collector.chunks) == "one\ntwo\nthree\n"
    assert collector.completions == [(True, 0)]
    assert runner.is_running() is False


def test_failing_command_reports_unsuccessful_completion():
    runner = CommandRunner(shell="/bin/sh")
    collector = Collector()
    runner.run("exit 3", collector.on_output, collector.on_complete)
    assert collector.done.wait(10)
    assert collector.completions == [(False, 3)]


def test_second_run_is_rejected_while_active():
    runner = CommandRunner(shell="/bin/sh")
    first = Collector()
    assert runner.run("sleep 5", first.on_output, first.on_complete)["status"] == "success"
    try:
        second = Collector()
        res = runner.run("echo nope", second.on_output, second.on_complete)
        assert res["status"] == "error"
        assert second.chunks == [] and second.completions == []
    finally:
        runner.cancel()
    assert first.done.wait(10)
    assert first.completions[0][0] is False


def test_cancel_discards_later_output():
    runner = CommandRunner(shell="/bin/sh")
    collector = Collector()
    runner.run("echo before; sleep 5; echo after", collector.on_output, collector.on_complete)
    # wait for the first chunk before cancelling
    for _ in range(100):
        if collector.chunks:
            break
        collector.done.wait(0.05)
    assert runner.cancel()["status"] == "success"
    assert collector.done.wait(10)
    assert "after" not in "".join(collector.chunks)
    assert collector.completions[0][0] is False


def test_cancel_without_run_is_noop():
    assert CommandRunner(shell="/bin/sh").cancel()["status"] == "noop"


def test_launch_failure_becomes_error_output():
    runner = CommandRunner(shell="/nonexistent/shell")
    collector = Collector()
    res = runner.run("echo hi", collector.on_output, collector.on_complete)
    assert res["status"] == "error"
    assert collector.chunks and collector.chunks[0].startswith("Error: ")
    assert collector.completions == [(False, None)]
    assert runner.is_running() is False


def test_dispatch_receives_every_callback():
    dispatched = []

    def dispatch(fn, *args):
        dispatched.append(fn.__name__)
        fn(*args)

    runner = CommandRunner(shell="/bin/sh", dispatch=dispatch)
    collector = Collector()
    runner.run("printf done", collector.on_output, collector.on_complete)
    assert collector.done.wait(10)
    assert dispatched[-1] == "on_complete"
    assert "on_output" in dispatched


def test_empty_command_rejected():
    runner = CommandRunner(shell="/bin/sh")
    collector = Collector()
    assert runner.run("   ", collector.on_output, collector.on_complete)["status"] == "error"
    assert collector.completions == []


def test_non_string_shell_becomes_error_output():
    runner = CommandRunner(shell=123)
    collector = Collector()
    res = runner.run("echo hi", collector.on_output, collector.on_complete)
    assert res["status"] == "error"
    assert collector.chunks[0].startswith("Error: ")
    assert collector.completions == [(False, None)]
    assert runner.is_running() is False


def test_second_cancel_kills_a_process_ignoring_sigterm():
    runner = CommandRunner(shell="/bin/sh")
    collector = Collector()
    runner.run("trap '' TERM; echo armed; sleep 5", collector.on_output, collector.on_complete)
    for _ in range(100):
        if "armed" in "".join(collector.chunks):
            break
        collector.done.wait(0.05)

    assert runner.cancel()["status"] == "success"
    # SIGTERM is ignored by the shell; the run keeps going
    assert collector.done.wait(0.5) is False
    assert runner.is_running() is True

    assert runner.cancel()["status"] == "success"
    assert collector.done.wait(3)
    success, returncode = collector.completions[0]
    assert success is False
    assert returncode != 0
    assert runner.is_running() is False
