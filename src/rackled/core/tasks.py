"""Registry of detached blink and scan sequences."""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Coroutine, Dict, List, Optional

from ..common.exceptions import ValidationError
from .config import SystemDefaults

logger = logging.getLogger(__name__)


class TaskState(str, Enum):
    """Background task states"""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class BackgroundTask:
    """One spawned sequence and its outcome"""

    kind: str
    description: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    state: TaskState = TaskState.RUNNING
    created: float = field(default_factory=time.time)
    finished: Optional[float] = None
    error: Optional[str] = None
    task: Optional[asyncio.Task] = field(default=None, repr=False)

    @property
    def done(self) -> bool:
        return self.state != TaskState.RUNNING

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind,
            "description": self.description,
            "state": self.state.value,
            "created": self.created,
            "finished": self.finished,
            "error": self.error,
        }


class BlinkManager:
    """Spawns, tracks and cancels background sequences.

    Failures are not reported to the request that started a sequence;
    they are logged and kept on the task record.
    """

    def __init__(self, max_history: int = SystemDefaults.MAX_TASK_HISTORY):
        self.max_history = max_history
        self._tasks: Dict[str, BackgroundTask] = {}

    def spawn(
        self, kind: str, description: str, coro: Coroutine[Any, Any, None]
    ) -> BackgroundTask:
        """Schedule ``coro`` on the running loop"""
        record = BackgroundTask(kind=kind, description=description)
        record.task = asyncio.get_running_loop().create_task(
            coro, name=f"{kind}-{record.id}"
        )
        record.task.add_done_callback(lambda t: self._on_done(record, t))
        self._tasks[record.id] = record
        self._trim()
        logger.info(f"Started {kind} task {record.id}: {description}")
        return record

    def _on_done(self, record: BackgroundTask, task: asyncio.Future) -> None:
        record.finished = time.time()
        if task.cancelled():
            record.state = TaskState.CANCELLED
            logger.info(f"{record.kind} task {record.id} cancelled")
            return
        error = task.exception()
        if error is not None:
            record.state = TaskState.FAILED
            record.error = str(error)
            logger.error(f"{record.kind} task {record.id} failed: {error}")
        else:
            record.state = TaskState.COMPLETED
            logger.info(f"{record.kind} task {record.id} completed")

    def _trim(self) -> None:
        """Forget the oldest finished tasks beyond the history limit"""
        excess = len(self._tasks) - self.max_history
        if excess <= 0:
            return
        for task_id in [t.id for t in self._tasks.values() if t.done][:excess]:
            del self._tasks[task_id]

    def get(self, task_id: str) -> BackgroundTask:
        record = self._tasks.get(task_id)
        if record is None:
            raise ValidationError(f'Unknown task "{task_id}".')
        return record

    def list_tasks(self) -> List[BackgroundTask]:
        return list(self._tasks.values())

    @property
    def running(self) -> List[BackgroundTask]:
        return [t for t in self._tasks.values() if not t.done]

    def cancel(self, task_id: str) -> BackgroundTask:
        """Request cancellation; finished tasks are left as they are"""
        record = self.get(task_id)
        if not record.done and record.task is not None:
            record.task.cancel()
            logger.info(f"Cancelling {record.kind} task {record.id}")
        return record

    async def stop(self) -> None:
        """Cancel every running task and wait for them to unwind"""
        pending = [t.task for t in self.running if t.task is not None]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.info(f"Cancelled {len(pending)} background tasks")
