"""Background task scheduling and the shared result ledger."""

from .ledger import ResultLedger
from .service import (
    COMPLETED,
    ERROR,
    QUEUED,
    RUNNING,
    BackgroundTask,
    SimulationTaskService,
    TaskStateError,
)

__all__ = [
    "BackgroundTask",
    "ResultLedger",
    "SimulationTaskService",
    "TaskStateError",
    "QUEUED",
    "RUNNING",
    "COMPLETED",
    "ERROR",
]
