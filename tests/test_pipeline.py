import pytest

from zfs_bootstrap.errors import PreflightError
from zfs_bootstrap.pipeline import BaseStep, run_pipeline
from zfs_bootstrap.state_store import load_record, mark_step_failed, new_record, save_record


class Recorder(BaseStep):
    def __init__(self, step_id, log, fail_in=None):
        self.step_id = step_id
        self.log = log
        self.fail_in = fail_in

    def _phase(self, phase):
        self.log.append(f"{self.step_id}.{phase}")
        if phase == self.fail_in:
            raise PreflightError(f"{self.step_id} {phase} failed")

    def check(self, ctx):
        self._phase("check")

    def run(self, ctx):
        self._phase("run")

    def verify(self, ctx):
        self._phase("verify")


def test_runs_check_run_verify_in_order(make_ctx):
    ctx = make_ctx()
    log = []
    result = run_pipeline(ctx=ctx, steps=[Recorder("a", log), Recorder("b", log)])
    assert log == ["a.check", "a.run", "a.verify", "b.check", "b.run", "b.verify"]
    assert result.ran_steps == ["a", "b"]
    assert ctx.record["execution"]["completed_steps"] == ["a", "b"]
    assert ctx.record["execution"]["current_step"] is None


@pytest.mark.parametrize("phase", ["check", "run", "verify"])
def test_first_failure_halts_and_is_recorded(make_ctx, phase):
    ctx = make_ctx()
    log = []
    with pytest.raises(PreflightError):
        run_pipeline(ctx=ctx, steps=[Recorder("a", log), Recorder("b", log, fail_in=phase), Recorder("c", log)])
    assert not any(entry.startswith("c.") for entry in log)
    exe = ctx.record["execution"]
    assert exe["failed_step"] == "b"
    assert exe["current_step"] == "b"
    assert exe["completed_steps"] == ["a"]
    assert exe["errors"][0]["type"] == "PreflightError"


def test_stop_after(make_ctx):
    ctx = make_ctx()
    log = []
    result = run_pipeline(ctx=ctx, steps=[Recorder("a", log), Recorder("b", log)], stop_after="a")
    assert result.stopped_after == "a"
    assert log == ["a.check", "a.run", "a.verify"]


def test_base_step_run_must_be_overridden(make_ctx):
    with pytest.raises(NotImplementedError):
        BaseStep().run(make_ctx())


@pytest.mark.parametrize("name", ["run.json", "run.yaml", "run.yml"])
def test_record_roundtrip(tmp_path, name):
    record = new_record({"target_disk": "/dev/sda", "zfs_passphrase": "***"})
    mark_step_failed(record, "30_create_pools", RuntimeError("boom"))
    path = tmp_path / "sub" / name
    save_record(str(path), record)
    loaded = load_record(str(path))
    assert loaded["execution"]["failed_step"] == "30_create_pools"
    assert loaded["config"]["zfs_passphrase"] == "***"


def test_load_missing_record_is_empty(tmp_path):
    assert load_record(str(tmp_path / "none.json")) == {}
