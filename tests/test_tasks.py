"""Tests for the background task state machine and result ledger."""

import threading
from dataclasses import replace

import pytest

from aerotest.core.engine import EngineFault, run_simulation
from aerotest.core.types import SimulationContext
from aerotest.tasks.ledger import ResultLedger
from aerotest.tasks.service import (
    COMPLETED,
    ERROR,
    QUEUED,
    RUNNING,
    BackgroundTask,
    SimulationTaskService,
    TaskStateError,
)


def test_run_sync_completes(scenario_bytes, small_config):
    service = SimulationTaskService(config=small_config)
    task_id = service.run_sync(scenario_bytes, "scenario.step")
    task = service.get_task(task_id)

    assert task["status"] == COMPLETED
    assert task["progress"] == 100
    assert task["start_time"] is not None
    assert task["end_time"] is not None
    assert task["error"] is None

    result = service.get_result(task["result_id"])
    assert result is not None
    assert result.seed == 521
    assert service.result_for_task(task_id) is result
    assert len(service.ledger) == 1


def test_submit_runs_in_background(scenario_bytes, small_config):
    service = SimulationTaskService(config=small_config)
    task_id = service.submit(scenario_bytes, "scenario.step")
    assert service.get_task(task_id)["status"] in (QUEUED, RUNNING, COMPLETED)
    task = service.wait(task_id, timeout=60)
    assert task["status"] == COMPLETED
    assert task["result_id"] in service.ledger


def test_concurrent_runs_do_not_interfere(scenario_bytes, stl_bytes, small_config):
    service = SimulationTaskService(config=small_config)
    ids = [
        service.submit(scenario_bytes, "a.step"),
        service.submit(stl_bytes, "b.stl"),
        service.submit(scenario_bytes, "c.step"),
    ]
    for task_id in ids:
        assert service.wait(task_id, timeout=60)["status"] == COMPLETED

    a = service.result_for_task(ids[0])
    c = service.result_for_task(ids[2])
    assert a.content_hash() == c.content_hash()
    assert len(service.ledger) == 3
    assert len(service.list_tasks()) == 3
    assert service.active_threads() == 0


def test_engine_fault_moves_task_to_error(scenario_bytes, small_config, monkeypatch):
    def fail(*args, **kwargs):
        raise EngineFault("resource exhausted")

    monkeypatch.setattr("aerotest.tasks.service.run_simulation", fail)
    service = SimulationTaskService(config=small_config)
    task_id = service.run_sync(scenario_bytes, "scenario.step")
    task = service.get_task(task_id)

    assert task["status"] == ERROR
    assert "resource exhausted" in task["error"]
    assert task["result_id"] is None
    assert len(service.ledger) == 0


def test_finished_threads_are_released(scenario_bytes, small_config, monkeypatch):
    service = SimulationTaskService(config=small_config)
    ok = service.submit(scenario_bytes, "ok.step")
    assert service.wait(ok, timeout=60)["status"] == COMPLETED
    assert service.active_threads() == 0

    def fail(*args, **kwargs):
        raise EngineFault("resource exhausted")

    monkeypatch.setattr("aerotest.tasks.service.run_simulation", fail)
    bad = service.submit(scenario_bytes, "bad.step")
    assert service.wait(bad, timeout=60)["status"] == ERROR
    assert service.active_threads() == 0
    assert service.wait(ok)["status"] == COMPLETED


def test_empty_upload_is_not_an_error(small_config):
    service = SimulationTaskService(config=small_config)
    task_id = service.run_sync(b"", "empty.step")
    assert service.get_task(task_id)["status"] == COMPLETED


def test_invalid_context_rejected_before_task(scenario_bytes, small_config):
    service = SimulationTaskService(config=small_config)
    with pytest.raises(ValueError):
        service.run_sync(scenario_bytes, "x.step", SimulationContext(tier="gold"))
    assert service.list_tasks() == []


def test_audit_every_nth_standard_run(scenario_bytes, small_config):
    config = small_config.model_copy(update={"audit_every": 2})
    service = SimulationTaskService(config=config)
    first = service.result_for_task(service.run_sync(scenario_bytes, "s.step"))
    second = service.result_for_task(service.run_sync(scenario_bytes, "s.step"))
    premium = service.result_for_task(
        service.run_sync(scenario_bytes, "s.step", SimulationContext(tier="premium"))
    )

    assert first.audit_log is None
    assert second.audit_log is not None
    assert second.audit_log.startswith("AUDIT PASSED")
    assert premium.audit_log is None


def test_audit_disabled(scenario_bytes, small_config):
    config = small_config.model_copy(update={"audit_every": 0})
    service = SimulationTaskService(config=config)
    for _ in range(3):
        result = service.result_for_task(service.run_sync(scenario_bytes, "s.step"))
        assert result.audit_log is None


def test_state_machine_transitions():
    task = BackgroundTask(id="t1", file_name="f", tier="standard")
    assert task.status == QUEUED
    with pytest.raises(TaskStateError):
        task.transition(COMPLETED)

    task.transition(RUNNING)
    assert task.start_time is not None
    task.transition(ERROR)
    assert task.is_terminal
    assert task.end_time is not None

    with pytest.raises(TaskStateError):
        task.transition(RUNNING)


def test_progress_never_decreases():
    task = BackgroundTask(id="t1", file_name="f", tier="standard")
    task.report(40, "Stage A", "a")
    task.report(20, "Stage B", "b")
    assert task.progress == 40
    assert task.stage == "Stage B"
    task.report(250, "Done", "c")
    assert task.progress == 100


def test_ledger_is_append_only(scenario_bytes, small_config):
    service = SimulationTaskService(config=small_config)
    result = service.result_for_task(service.run_sync(scenario_bytes, "s.step"))
    with pytest.raises(ValueError):
        service.ledger.append(result)


def test_ledger_concurrent_appends(scenario_bytes, small_config):
    base = run_simulation(scenario_bytes, config=small_config)
    ledger = ResultLedger()
    results = [replace(base, id=f"r{i}") for i in range(200)]

    def worker(chunk):
        for r in chunk:
            ledger.append(r)

    threads = [threading.Thread(target=worker, args=(results[i::4],)) for i in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(ledger) == 200
    assert {r.id for r in ledger.snapshot()} == {r.id for r in results}
    assert ledger.get("r17") is not None
    assert len(ledger.for_file(base.file_name)) == 200
