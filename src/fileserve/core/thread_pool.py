"""
=============================================================================
THREAD POOL
=============================================================================

Worker threads that take accepted connections off one bounded queue.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   accept loop ──submit()──►  ┌──────────────────────┐               │
    │                              │  job queue (bounded)  │               │
    │                              └──────────┬───────────┘               │
    │                       ┌─────────────────┼─────────────────┐          │
    │                       ▼                 ▼                 ▼          │
    │                  ┌─────────┐       ┌─────────┐       ┌─────────┐     │
    │                  │Worker-0 │       │Worker-1 │  ...  │Worker-N │     │
    │                  └─────────┘       └─────────┘       └─────────┘     │
    │                                                                      │
    │   min_workers exist from start(). A new worker is spawned when a    │
    │   job is queued while every worker is busy, up to max_workers.       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
STALE JOBS
=============================================================================

A connection that sat in the queue longer than its deadline is not served:
the browser has most likely given up on it already. The job's on_expire
callback runs instead (the server uses it to close the socket), so nothing
leaks.

Handlers share no mutable state (the config is frozen, everything else
lives on the worker's stack), so the lock below only guards the worker list.

=============================================================================
"""

import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    IDLE = "idle"
    BUSY = "busy"
    STOPPED = "stopped"


@dataclass
class Job:
    """
    One unit of queued work, normally "serve this connection".

    Attributes:
        func: Called with args/kwargs by a worker.
        deadline: Seconds the job may wait in the queue; None waits forever.
        on_expire: Called (no arguments) instead of func when the deadline
                   passed before a worker got to it.
        queued_at: When submit() queued the job.
    """

    func: Callable[..., Any]
    args: tuple = ()
    kwargs: dict = field(default_factory=dict)
    deadline: Optional[float] = None
    on_expire: Optional[Callable[[], Any]] = None
    queued_at: float = field(default_factory=time.monotonic)

    @property
    def waited(self) -> float:
        return time.monotonic() - self.queued_at

    @property
    def expired(self) -> bool:
        return self.deadline is not None and self.waited > self.deadline


# Put on the queue once per worker at shutdown
_STOP = None


class Worker(threading.Thread):
    """Runs jobs until it receives the stop marker or is told to stop."""

    def __init__(self, jobs: queue.Queue, worker_id: int, poll_interval: float = 60.0):
        super().__init__(name=f"fileserve-worker-{worker_id}", daemon=True)
        self.jobs = jobs
        self.worker_id = worker_id
        self.poll_interval = poll_interval

        self.state = WorkerState.IDLE
        self._stopping = threading.Event()

        self.jobs_done = 0
        self.jobs_failed = 0

    def run(self):
        while not self._stopping.is_set():
            try:
                job = self.jobs.get(timeout=self.poll_interval)
            except queue.Empty:
                continue

            try:
                if job is _STOP:
                    break
                self._run_job(job)
            finally:
                self.jobs.task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"{self.name} stopped after {self.jobs_done} jobs, {self.jobs_failed} failed")

    def _run_job(self, job: Job):
        self.state = WorkerState.BUSY
        try:
            if job.expired:
                logger.warning(f"Dropping job that waited {job.waited:.2f}s in the queue")
                self.jobs_failed += 1
                if job.on_expire is not None:
                    job.on_expire()
                return

            job.func(*job.args, **job.kwargs)
            self.jobs_done += 1

        except Exception:
            logger.exception(f"{self.name}: job failed")
            self.jobs_failed += 1

        finally:
            self.state = WorkerState.IDLE

    def stop(self):
        self._stopping.set()


class ThreadPool:
    """
    Elastic pool of Worker threads.

    Usage:
        pool = ThreadPool(min_workers=4, max_workers=16)
        pool.start()

        pool.submit(serve_connection, args=(conn,), deadline=30, on_expire=conn.close)

        pool.shutdown(timeout=5.0)
    """

    def __init__(
        self,
        min_workers: int = 4,
        max_workers: int = 16,
        max_queue_size: int = 100,
        poll_interval: float = 60.0,
    ):
        """
        Args:
            min_workers: Workers spawned by start().
            max_workers: Ceiling when scaling up.
            max_queue_size: Jobs that may wait; submit() blocks or rejects
                            beyond this.
            poll_interval: How often an idle worker checks for stop().
        """
        self.min_workers = min_workers
        self.max_workers = max_workers
        self.max_queue_size = max_queue_size
        self.poll_interval = poll_interval

        self._jobs: queue.Queue[Optional[Job]] = queue.Queue(maxsize=max_queue_size)
        self._workers: list[Worker] = []
        self._lock = threading.Lock()
        self._next_id = 0

        self._started = False
        self._closing = False

    def start(self):
        if self._started:
            return

        with self._lock:
            for _ in range(self.min_workers):
                self._spawn()
        self._started = True
        self._closing = False
        logger.debug(f"Thread pool started with {self.min_workers} workers")

    def _spawn(self) -> Worker:
        """Start one more worker. Caller holds self._lock."""
        worker = Worker(self._jobs, self._next_id, self.poll_interval)
        self._next_id += 1
        self._workers.append(worker)
        worker.start()
        return worker

    def submit(
        self,
        func: Callable[..., Any],
        args: tuple = (),
        kwargs: Optional[dict] = None,
        deadline: Optional[float] = None,
        on_expire: Optional[Callable[[], Any]] = None,
        block: bool = True,
        queue_timeout: Optional[float] = None,
    ) -> bool:
        """
        Queue func(*args, **kwargs).

        Args:
            deadline: Max seconds the job may wait before on_expire runs
                      instead of func.
            on_expire: Cleanup for a job that expired in the queue.
            block: Wait for room when the queue is full.
            queue_timeout: How long to wait for room when blocking.

        Returns:
            False when the queue was full, True otherwise.

        Raises:
            RuntimeError: The pool isn't running.
        """
        if not self._started or self._closing:
            raise RuntimeError("Thread pool is not running")

        job = Job(func, args, kwargs or {}, deadline=deadline, on_expire=on_expire)

        try:
            self._jobs.put(job, block=block, timeout=queue_timeout)
        except queue.Full:
            return False

        self._scale_up()
        return True

    def _scale_up(self):
        with self._lock:
            if len(self._workers) >= self.max_workers or self._jobs.empty():
                return
            if any(w.state is not WorkerState.BUSY for w in self._workers):
                return
            self._spawn()
            logger.debug(f"Scaled up to {len(self._workers)} workers")

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop every worker.

        Args:
            wait: Give queued jobs a chance to run first.
            timeout: Max seconds to wait for the queue to empty.
        """
        if not self._started:
            return

        self._closing = True

        if wait:
            give_up = time.monotonic() + timeout if timeout else None
            while not self._jobs.empty():
                if give_up is not None and time.monotonic() > give_up:
                    logger.warning("Jobs still queued at shutdown, abandoning them")
                    break
                time.sleep(0.1)

        with self._lock:
            workers, self._workers = self._workers, []

        for worker in workers:
            worker.stop()
            try:
                self._jobs.put(_STOP, timeout=0.5)
            except queue.Full:
                logger.debug(f"{worker.name} will notice stop() on its next poll")

        for worker in workers:
            worker.join(timeout=2.0)

        self._started = False
        logger.debug("Thread pool stopped")
