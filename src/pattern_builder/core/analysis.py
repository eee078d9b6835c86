"""Cancellable background analysis of filename samples."""

import logging
import threading
from collections.abc import Callable, Iterable
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from .models import EngineConfig, TokenAnalysis
from .tokenizer import AnalysisCancelled, FilenameTokenizer

if TYPE_CHECKING:
    from .custom_tokens import CustomTokenManager

logger = logging.getLogger(__name__)


class AnalysisStatus(str, Enum):
    """Terminal state of a background analysis."""

    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    FAILED = "FAILED"


@dataclass(frozen=True)
class AnalysisOutcome:
    """The single terminal result of one submitted analysis."""

    status: AnalysisStatus
    analysis: TokenAnalysis | None = None
    error: str | None = None
    files_analyzed: int = 0
    truncated: bool = False

    @property
    def succeeded(self) -> bool:
        return self.status == AnalysisStatus.COMPLETED


class AnalysisTask:
    """Handle to a submitted analysis."""

    def __init__(self, future: Future, cancel_event: threading.Event):
        self._future = future
        self._cancel_event = cancel_event

    def cancel(self) -> None:
        """Ask the analysis to stop. A running analysis stops at the next filename."""
        self._cancel_event.set()
        self._future.cancel()

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_event.is_set()

    def done(self) -> bool:
        return self._future.done()

    def result(self, timeout: float | None = None) -> AnalysisOutcome:
        """
        Wait for the outcome.

        Raises:
            TimeoutError: If the analysis does not finish within ``timeout``
        """
        try:
            return self._future.result(timeout)
        except CancelledError:
            return AnalysisOutcome(status=AnalysisStatus.CANCELLED)


class BackgroundAnalysisService:
    """Runs tokenizer analysis off the calling thread, one analysis at a time.

    Submitting a new analysis cancels the one in flight, so at most one
    analysis per service (one service per session) is ever running.
    """

    def __init__(
        self,
        tokenizer: FilenameTokenizer | None = None,
        custom_tokens: "CustomTokenManager | None" = None,
        config: EngineConfig | None = None,
    ):
        """
        Initialize the service.

        Args:
            tokenizer: Tokenizer to run; defaults to one built from ``config``
            custom_tokens: When given, its tokens refine UNKNOWN tokens of every result
            config: Engine configuration; ``max_sample_files`` caps each analysis
        """
        self.config = config or EngineConfig()
        self.tokenizer = tokenizer or FilenameTokenizer(self.config)
        self.custom_tokens = custom_tokens
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="pattern-analysis")
        self._lock = threading.Lock()
        self._current: AnalysisTask | None = None

    def submit(
        self,
        filenames: Iterable[str],
        on_complete: Callable[[AnalysisOutcome], None] | None = None,
    ) -> AnalysisTask:
        """
        Start analyzing filenames in the background.

        Args:
            filenames: Sample filenames; only the first ``max_sample_files`` are used
            on_complete: Called exactly once with the outcome, on the worker thread
                or, for an analysis cancelled before it started, on the cancelling thread

        Returns:
            Handle to wait for or cancel the analysis
        """
        names = [name for name in filenames if name and name.strip()]
        limit = self.config.max_sample_files
        truncated = len(names) > limit
        if truncated:
            logger.warning(f"Analyzing the first {limit} of {len(names)} filenames")
            names = names[:limit]

        cancel_event = threading.Event()
        with self._lock:
            if self._current is not None and not self._current.done():
                logger.info("Cancelling previous analysis")
                self._current.cancel()
            future = self._executor.submit(self._run, names, truncated, cancel_event)
            task = AnalysisTask(future, cancel_event)
            self._current = task

        if on_complete is not None:
            future.add_done_callback(lambda _: on_complete(task.result()))
        logger.debug(f"Submitted analysis of {len(names)} filenames")
        return task

    def _run(
        self, names: list[str], truncated: bool, cancel_event: threading.Event
    ) -> AnalysisOutcome:
        try:
            analysis = self.tokenizer.analyze_filenames(names, should_cancel=cancel_event.is_set)
            if self.custom_tokens is not None:
                analysis = self.custom_tokens.enhance_with_custom_tokens(analysis)
        except AnalysisCancelled:
            logger.info("Analysis cancelled")
            return AnalysisOutcome(status=AnalysisStatus.CANCELLED, truncated=truncated)
        except Exception as e:
            logger.exception("Background analysis failed")
            return AnalysisOutcome(status=AnalysisStatus.FAILED, error=str(e), truncated=truncated)

        if cancel_event.is_set():
            return AnalysisOutcome(status=AnalysisStatus.CANCELLED, truncated=truncated)
        logger.info(f"Background analysis finished for {len(names)} filenames")
        return AnalysisOutcome(
            status=AnalysisStatus.COMPLETED,
            analysis=analysis,
            files_analyzed=len(names),
            truncated=truncated,
        )

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._current is not None and not self._current.done()

    def cancel_current(self) -> None:
        """Cancel the analysis in flight, if any."""
        with self._lock:
            if self._current is not None:
                self._current.cancel()

    def shutdown(self, wait: bool = True) -> None:
        """Cancel outstanding work and stop the worker thread."""
        self.cancel_current()
        self._executor.shutdown(wait=wait, cancel_futures=True)
        logger.debug("Background analysis service shut down")
