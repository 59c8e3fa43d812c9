"""Background evaluation of pattern scripts.

The orchestrator owns the life cycle of "run this script against this data
source".  Evaluations run on a single worker thread and at most one of them
is in flight; requests arriving meanwhile are folded into
``has_unevaluated_changes`` and produce exactly one follow-up run.

All state visible to the foreground is written from the foreground:

* :meth:`EvaluationOrchestrator.request` clears the previous diagnostic,
  console and tree and publishes ``PATTERN_CHANGED`` before the job is
  submitted;
* :meth:`EvaluationOrchestrator.tick` collects a finished job, moves its tree
  into the :class:`ResultStore`, publishes ``PATTERN_CHANGED`` again and only
  then drops the ``running`` flag.

The worker itself only computes an :class:`EvaluationResult` and hands it
back through its future.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Tuple

from .errors import EvaluatorBusyError
from .events import Event, EventBus
from .project import ProjectFile
from .provider import DataSource
from .runtime import Diagnostic, EvaluationResult, LogEntry, PatternRuntime
from .store import ResultStore

logger = logging.getLogger(__name__)


class Phase(Enum):
    IDLE = "idle"
    SCHEDULED = "scheduled"
    RUNNING = "running"


@dataclass
class EvaluationState:
    running: bool = False
    has_unevaluated_changes: bool = False
    auto_run: bool = False


@dataclass(frozen=True)
class EvaluationRequest:
    source_text: str
    data_source: Optional[DataSource]


class EvaluationOrchestrator:
    """Schedule evaluations on a background worker and publish their results."""

    def __init__(
        self,
        runtime: Optional[PatternRuntime] = None,
        *,
        store: Optional[ResultStore] = None,
        bus: Optional[EventBus] = None,
        project: Optional[ProjectFile] = None,
        data_source: Optional[DataSource] = None,
        executor: Optional[Executor] = None,
    ) -> None:
        self.runtime = runtime or PatternRuntime()
        self.store = store or ResultStore()
        self.bus = bus or EventBus()
        self.project = project
        self.state = EvaluationState()
        self.runs_started = 0
        self.last_result: Optional[EvaluationResult] = None

        self._data_source = data_source
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="pattern-eval"
        )
        self._future: Optional["Future[EvaluationResult]"] = None
        self._phase = Phase.IDLE
        self._phase_lock = threading.Lock()
        self._diagnostic: Optional[Diagnostic] = None
        self._console: Tuple[LogEntry, ...] = ()

    # ------------------------------------------------------------------
    # state accessors
    # ------------------------------------------------------------------
    @property
    def running(self) -> bool:
        return self.state.running

    @property
    def phase(self) -> Phase:
        with self._phase_lock:
            return self._phase

    def _set_phase(self, phase: Phase) -> None:
        with self._phase_lock:
            self._phase = phase

    @property
    def diagnostic(self) -> Optional[Diagnostic]:
        return self._diagnostic

    @property
    def console(self) -> Tuple[LogEntry, ...]:
        return self._console

    @property
    def data_source(self) -> Optional[DataSource]:
        return self._data_source

    def set_data_source(self, source: Optional[DataSource]) -> None:
        if self.state.running:
            raise EvaluatorBusyError("cannot replace the data source while an evaluation is running")
        self._data_source = source

    # ------------------------------------------------------------------
    # triggers
    # ------------------------------------------------------------------
    def set_auto_run(self, enabled: bool) -> None:
        self.state.auto_run = enabled
        if enabled:
            self.state.has_unevaluated_changes = True

    def notify_text_changed(self) -> None:
        if self.state.auto_run:
            self.state.has_unevaluated_changes = True

    def request(self, source_text: str) -> bool:
        """Schedule an evaluation of ``source_text``.

        Returns ``False`` when a run is already in flight; the request is then
        remembered as pending changes and re-issued by :meth:`tick` once the
        current run has been collected.
        """

        if self.state.running:
            self.state.has_unevaluated_changes = True
            logger.debug("evaluation already running, request coalesced")
            return False

        self.state.running = True
        self._set_phase(Phase.SCHEDULED)

        self.store.clear()
        self._diagnostic = None
        self._console = ()
        self.bus.publish(Event.PATTERN_CHANGED)

        job = EvaluationRequest(str(source_text), self._data_source)
        try:
            self._future = self._executor.submit(self._evaluate, job)
        except Exception:
            self._set_phase(Phase.IDLE)
            self.state.running = False
            raise
        self.runs_started += 1
        logger.debug("scheduled evaluation #%d (%d chars)", self.runs_started, len(job.source_text))
        return True

    def _evaluate(self, job: EvaluationRequest) -> EvaluationResult:
        self._set_phase(Phase.RUNNING)
        try:
            return self.runtime.execute(job.data_source, job.source_text)
        except Exception as exc:
            logger.exception("pattern runtime failed")
            return EvaluationResult.failure(f"internal error: {exc}")

    # ------------------------------------------------------------------
    # foreground
    # ------------------------------------------------------------------
    def tick(self, text_provider: Optional[Callable[[], str]] = None) -> bool:
        """Run one foreground step; returns ``True`` if a result was collected."""

        collected = self._collect()
        if (
            self.state.has_unevaluated_changes
            and not self.state.running
            and text_provider is not None
        ):
            self.state.has_unevaluated_changes = False
            if self.project is not None:
                self.project.mark_dirty()
            self.request(text_provider())
        return collected

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the in-flight evaluation finishes and collect it."""

        future = self._future
        if future is None:
            return False
        wait_futures([future], timeout=timeout)
        return self._collect()

    def _collect(self) -> bool:
        future = self._future
        if future is None or not future.done():
            return False
        self._future = None
        result = future.result()

        self._diagnostic = result.diagnostic
        self._console = result.console
        if result.tree is not None:
            self.store.replace(result.tree)
            self.bus.publish(Event.PATTERN_CHANGED)
        self.last_result = result

        self._set_phase(Phase.IDLE)
        self.state.running = False
        if result.diagnostic is not None:
            logger.debug("evaluation failed: %s", result.diagnostic.describe())
        return True

    def shutdown(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=True)
