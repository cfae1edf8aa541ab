"""Background simulation tasks.

Each submitted upload becomes a BackgroundTask that moves through

    queued -> running -> completed
                      -> error

Terminal states are final; there is no retry. The task record is the only
mutable object a run touches, and every mutation happens under the service
lock. Results are appended to a ResultLedger.
"""

from __future__ import annotations

import threading
import time
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any

from ..analysis.audit import audit_against_baseline
from ..core.config import EngineConfig, default_config
from ..core.engine import run_simulation
from ..core.logging import get_logger
from ..core.types import AeroResult, SimulationContext
from .ledger import ResultLedger

logger = get_logger(__name__)

QUEUED = "queued"
RUNNING = "running"
COMPLETED = "completed"
ERROR = "error"

_TRANSITIONS: dict[str, tuple[str, ...]] = {
    QUEUED: (RUNNING,),
    RUNNING: (COMPLETED, ERROR),
    COMPLETED: (),
    ERROR: (),
}


class TaskStateError(RuntimeError):
    """Illegal task state transition."""


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class BackgroundTask:
    """Mutable status record for one run.

    Attributes:
        id: Task identifier.
        file_name: Upload name.
        tier: Requested tier.
        status: queued, running, completed or error.
        progress: Percent complete (0-100, never decreases).
        stage: Label of the last completed stage.
        latest_log: Last progress message.
        start_time: When the run started.
        end_time: When the run reached a terminal state.
        result_id: Id of the AeroResult once completed.
        error: Failure message once in error.
    """

    id: str
    file_name: str
    tier: str
    status: str = QUEUED
    progress: int = 0
    stage: str = "Queued"
    latest_log: str = ""
    created_at: datetime | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    result_id: str | None = None
    error: str | None = None

    @property
    def is_terminal(self) -> bool:
        return not _TRANSITIONS[self.status]

    def transition(self, status: str) -> None:
        if status not in _TRANSITIONS.get(self.status, ()):
            raise TaskStateError(f"Task {self.id}: cannot move from {self.status} to {status}")
        self.status = status
        if status == RUNNING:
            self.start_time = _utc_now()
        elif status in (COMPLETED, ERROR):
            self.end_time = _utc_now()

    def report(self, progress: int, stage: str, message: str) -> None:
        self.progress = max(self.progress, min(int(progress), 100))
        self.stage = stage
        self.latest_log = message

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "file_name": self.file_name,
            "tier": self.tier,
            "status": self.status,
            "progress": self.progress,
            "stage": self.stage,
            "latest_log": self.latest_log,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "result_id": self.result_id,
            "error": self.error,
        }


@dataclass(frozen=True)
class _Request:
    data: bytes | str
    file_name: str
    ctx: SimulationContext


class SimulationTaskService:
    """Thread-backed runner for simulation tasks."""

    def __init__(
        self,
        config: EngineConfig | None = None,
        ledger: ResultLedger | None = None,
    ) -> None:
        self.config = config or default_config()
        self.ledger = ledger if ledger is not None else ResultLedger()
        self._tasks: dict[str, BackgroundTask] = {}
        self._requests: dict[str, _Request] = {}
        self._threads: dict[str, threading.Thread] = {}
        self._standard_runs = 0
        self._lock = threading.Lock()

    def _create(self, data: bytes | str, file_name: str, ctx: SimulationContext | None) -> str:
        ctx = ctx or SimulationContext()
        self.config.tier(ctx.tier)
        task_id = uuid.uuid4().hex[:12]
        task = BackgroundTask(id=task_id, file_name=file_name, tier=ctx.tier, created_at=_utc_now())
        with self._lock:
            self._tasks[task_id] = task
            self._requests[task_id] = _Request(data=data, file_name=file_name, ctx=ctx)
        logger.info("Task queued", task_id=task_id, file_name=file_name, tier=ctx.tier)
        return task_id

    def submit(
        self,
        data: bytes | str,
        file_name: str,
        ctx: SimulationContext | None = None,
    ) -> str:
        """Queue a run on a background thread and return the task id."""
        task_id = self._create(data, file_name, ctx)
        t = threading.Thread(target=self._execute, args=(task_id,), daemon=True)
        with self._lock:
            self._threads[task_id] = t
        t.start()
        return task_id

    def run_sync(
        self,
        data: bytes | str,
        file_name: str,
        ctx: SimulationContext | None = None,
    ) -> str:
        """Run in the calling thread and return the task id."""
        task_id = self._create(data, file_name, ctx)
        self._execute(task_id)
        return task_id

    def wait(self, task_id: str, timeout: float | None = None) -> dict[str, Any] | None:
        """Block until a submitted task finishes (or the timeout expires)."""
        with self._lock:
            t = self._threads.get(task_id)
        if t is not None:
            t.join(timeout)
        return self.get_task(task_id)

    def get_task(self, task_id: str) -> dict[str, Any] | None:
        with self._lock:
            task = self._tasks.get(task_id)
            return None if task is None else task.to_dict()

    def list_tasks(self) -> list[dict[str, Any]]:
        """Snapshots of every task, newest first."""
        with self._lock:
            tasks = [t.to_dict() for t in self._tasks.values()]
        tasks.sort(key=lambda t: t["created_at"], reverse=True)
        return tasks

    def get_result(self, result_id: str) -> AeroResult | None:
        return self.ledger.get(result_id)

    def result_for_task(self, task_id: str) -> AeroResult | None:
        with self._lock:
            task = self._tasks.get(task_id)
            result_id = None if task is None else task.result_id
        return None if result_id is None else self.ledger.get(result_id)

    def _should_audit(self, ctx: SimulationContext) -> bool:
        every = self.config.audit_every
        if ctx.is_premium or every <= 0:
            return False
        with self._lock:
            self._standard_runs += 1
            return self._standard_runs % every == 0

    def _run(self, task_id: str, request: _Request) -> AeroResult:
        def progress(pct: int, stage: str, message: str) -> None:
            with self._lock:
                self._tasks[task_id].report(pct, stage, message)

        result = run_simulation(
            request.data,
            file_name=request.file_name,
            ctx=request.ctx,
            config=self.config,
            progress=progress,
        )

        if self._should_audit(request.ctx):
            with self._lock:
                self._tasks[task_id].report(100, "Auditing", "Running premium baseline")
            baseline_ctx = replace(request.ctx, tier="premium")
            baseline = run_simulation(
                request.data,
                file_name=request.file_name,
                ctx=baseline_ctx,
                config=self.config,
            )
            audit = audit_against_baseline(result, baseline)
            log = audit.to_log()
            if not audit.passed:
                logger.warn("Dual-run audit failed", task_id=task_id, audit=log)
            result = replace(result, audit_log=log)
        return result

    def active_threads(self) -> int:
        """Number of submitted runs whose worker thread has not finished."""
        with self._lock:
            return len(self._threads)

    def _execute(self, task_id: str) -> None:
        with self._lock:
            task = self._tasks[task_id]
            request = self._requests.pop(task_id)
            task.transition(RUNNING)

        start = time.perf_counter()
        try:
            result = self._run(task_id, request)
            self.ledger.append(result)
            with self._lock:
                task.result_id = result.id
                task.report(100, "Complete", f"Result {result.id} ready")
                task.transition(COMPLETED)
            logger.info(
                "Task completed",
                task_id=task_id,
                result_id=result.id,
                elapsed_ms=(time.perf_counter() - start) * 1000,
            )
        except Exception as exc:
            logger.error("Task failed", task_id=task_id, error=f"{type(exc).__name__}: {exc}")
            with self._lock:
                task.error = str(exc)
                task.latest_log = f"Error: {exc}"
                task.transition(ERROR)
        finally:
            with self._lock:
                self._threads.pop(task_id, None)
