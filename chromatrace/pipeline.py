"""
Chromatrace Pipeline Orchestrator.

Runs every uploaded file through its own pipeline:

    received -> type-validated -> normalized -> traced
             -> [resolved -> colorized]   (colour mode only)
             -> optimized -> done

Files share no state, so a batch is fanned out over a concurrent.futures pool
and joined in upload order. A failing file yields a failed outcome and never
aborts the rest of the batch.

Usage:
    from chromatrace.pipeline import Vectorizer
    from chromatrace.types import ColorMode

    batch = Vectorizer().process_files(uploads, ColorMode.COLOR)
    print(batch.to_dict())
"""

import logging
import os
import time
from concurrent.futures import FIRST_COMPLETED, Future, ProcessPoolExecutor, ThreadPoolExecutor, wait
from multiprocessing import Manager
from typing import Dict, List, MutableMapping, Optional, Sequence

from .colorize import colorize_svg
from .config import PipelineConfig
from .ingest import normalize_raster, validate_file_type
from .opacity import get_solid_svg
from .optimize import SVGOptimizer
from .tracing import PotraceTracer
from .types import (
    BatchResult,
    ColorMode,
    FileOutcome,
    FileState,
    Markup,
    NormalizedRaster,
    OptimizeFailure,
    PipelineTimeout,
    ProcessedResult,
    TraceFailure,
    UploadedFile,
)

logger = logging.getLogger(__name__)

# Seconds between deadline checks while a batch with file_timeout runs
POLL_INTERVAL = 0.05


class _FileRun:
    """Tracks the pipeline state of one file."""

    def __init__(self, upload: UploadedFile, progress: Optional[MutableMapping] = None, key: int = 0):
        self.upload = upload
        self.state = FileState.RECEIVED
        self.progress = progress
        self.key = key

    def advance(self, state: FileState) -> None:
        logger.debug("%s: %s -> %s", self.upload.original_name, self.state.value, state.value)
        self.state = state
        if self.progress is not None:
            self.progress[self.key] = state.value


class Vectorizer:
    """
    Potrace vectorizer with colour recovery.

    Args:
        config: Pipeline configuration (defaults to PipelineConfig())
        tracer: Tracing collaborator (defaults to a PotraceTracer built from config)
        optimizer: Markup optimizer (defaults to an SVGOptimizer built from config)
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        tracer: Optional[PotraceTracer] = None,
        optimizer: Optional[SVGOptimizer] = None,
    ):
        self.config = config or PipelineConfig()
        self.tracer = tracer or PotraceTracer.from_config(self.config)
        self.optimizer = optimizer or SVGOptimizer(path_precision=self.config.path_precision)

    def process_file(self, upload: UploadedFile, mode: ColorMode) -> ProcessedResult:
        """
        Vectorize one upload.

        Args:
            upload: Raw upload
            mode: COLOR or BLACK_AND_WHITE

        Returns:
            ProcessedResult carrying the final SVG

        Raises:
            VectorizationError: on the first failing stage
        """
        return self._run(_FileRun(upload), ColorMode(mode))

    def capture(
        self,
        upload: UploadedFile,
        mode: ColorMode,
        progress: Optional[MutableMapping] = None,
        key: int = 0,
    ) -> FileOutcome:
        """
        Vectorize one upload, returning a failed outcome instead of raising.

        Args:
            upload: Raw upload
            mode: COLOR or BLACK_AND_WHITE
            progress: Optional shared mapping receiving key -> state value on every transition
            key: Key of this upload in progress
        """
        run = _FileRun(upload, progress, key)
        try:
            result = self._run(run, ColorMode(mode))
        except Exception as e:
            logger.error(
                "Failed to vectorize %s at state %s: %s",
                upload.original_name, run.state.value, e,
                exc_info=True,
            )
            return FileOutcome.failure(upload, e, run.state)
        return FileOutcome.success(result)

    def process_files(self, uploads: Sequence[UploadedFile], mode: ColorMode) -> BatchResult:
        """
        Vectorize a batch of uploads concurrently.

        Args:
            uploads: Raw uploads
            mode: COLOR or BLACK_AND_WHITE

        Returns:
            BatchResult with one outcome per upload, in upload order
        """
        mode = ColorMode(mode)
        if not uploads:
            return BatchResult(color_mode=mode, outcomes=())

        workers = min(self.config.max_workers or os.cpu_count() or 1, len(uploads))
        use_processes = self.config.executor == 'process'
        executor_cls = ProcessPoolExecutor if use_processes else ThreadPoolExecutor
        logger.info(
            "Vectorizing %d file(s) in %s mode with %d %s worker(s)",
            len(uploads), mode.value, workers, self.config.executor,
        )

        # Worker processes report progress through a manager so timeouts know the last state
        manager = Manager() if use_processes and self.config.file_timeout is not None else None
        progress: MutableMapping = manager.dict() if manager is not None else {}

        executor = executor_cls(max_workers=workers)
        timed_out: Dict[int, PipelineTimeout] = {}
        try:
            futures = [
                executor.submit(_capture_file, self, upload, mode, progress, index)
                for index, upload in enumerate(uploads)
            ]
            if self.config.file_timeout is None:
                wait(futures)
            else:
                timed_out = self._wait_with_deadlines(uploads, futures)

            outcomes: List[FileOutcome] = []
            for index, (upload, future) in enumerate(zip(uploads, futures)):
                if index in timed_out:
                    state = FileState(progress.get(index, FileState.RECEIVED.value))
                    outcomes.append(FileOutcome.failure(upload, timed_out[index], state))
                    continue
                try:
                    outcomes.append(future.result())
                except Exception as e:
                    # Worker died before it could report (e.g. a broken process pool)
                    logger.error("Worker for %s failed: %s", upload.original_name, e)
                    outcomes.append(FileOutcome.failure(upload, e, FileState.RECEIVED))
        finally:
            executor.shutdown(wait=not timed_out, cancel_futures=bool(timed_out))
            if manager is not None:
                manager.shutdown()

        batch = BatchResult(color_mode=mode, outcomes=tuple(outcomes))
        logger.info(
            "Batch finished: %d succeeded, %d failed",
            len(batch.succeeded), len(batch.failed),
        )
        return batch

    def _wait_with_deadlines(
        self,
        uploads: Sequence[UploadedFile],
        futures: Sequence[Future],
    ) -> Dict[int, PipelineTimeout]:
        """
        Wait for every future, giving each file file_timeout seconds from the moment it starts.

        Files still queued behind busy workers are not charged for the wait.

        Returns:
            Mapping of upload index -> PipelineTimeout for files that ran out of time
        """
        timeout = self.config.file_timeout
        poll = min(POLL_INTERVAL, timeout)
        started: Dict[int, float] = {}
        timed_out: Dict[int, PipelineTimeout] = {}
        pending = dict(enumerate(futures))

        while pending:
            wait(list(pending.values()), timeout=poll, return_when=FIRST_COMPLETED)
            now = time.monotonic()
            for index, future in list(pending.items()):
                if future.done():
                    del pending[index]
                    continue
                if index not in started:
                    if future.running():
                        started[index] = now
                    continue
                if now - started[index] >= timeout:
                    future.cancel()
                    del pending[index]
                    error = PipelineTimeout(f"{uploads[index].original_name} exceeded {timeout}s")
                    logger.error("%s", error)
                    timed_out[index] = error
        return timed_out

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _run(self, run: _FileRun, mode: ColorMode) -> ProcessedResult:
        start = time.time()
        upload = validate_file_type(run.upload)
        run.advance(FileState.TYPE_VALIDATED)

        raster = normalize_raster(upload.data, upload.mime_type, self.config.max_dimension)
        run.advance(FileState.NORMALIZED)

        if mode == ColorMode.COLOR:
            traced = self._trace(raster, posterize=True)
            run.advance(FileState.TRACED)

            solid = get_solid_svg(traced)
            run.advance(FileState.RESOLVED)

            svg = colorize_svg(solid, raster.data, self.config.palette_size)
            run.advance(FileState.COLORIZED)
        else:
            svg = self._trace(raster, posterize=False)
            run.advance(FileState.TRACED)

        if self.config.optimize:
            svg = self._optimize(svg)
        run.advance(FileState.OPTIMIZED)

        result = ProcessedResult(
            svg=svg,
            field_name=upload.field_name,
            original_name=upload.original_name,
            mime_type=upload.mime_type,
        )
        run.advance(FileState.DONE)
        logger.info(
            "Vectorized %s (%dx%d, %s) in %.2fs",
            upload.original_name, raster.width, raster.height, mode.value, time.time() - start,
        )
        return result

    def _trace(self, raster: NormalizedRaster, posterize: bool) -> Markup:
        try:
            if posterize:
                return self.tracer.posterize(raster)
            return self.tracer.trace(raster)
        except Exception as e:
            raise TraceFailure(f"Tracing failed: {e}") from e

    def _optimize(self, svg: Markup) -> Markup:
        try:
            return self.optimizer.optimize_string(svg)
        except OptimizeFailure:
            raise
        except Exception as e:
            raise OptimizeFailure(f"Optimization failed: {e}") from e


def _capture_file(
    vectorizer: Vectorizer,
    upload: UploadedFile,
    mode: ColorMode,
    progress: MutableMapping,
    key: int,
) -> FileOutcome:
    # Module-level so process pools can pickle it
    return vectorizer.capture(upload, mode, progress, key)


def vectorize_files(
    uploads: Sequence[UploadedFile],
    mode: ColorMode,
    config: Optional[PipelineConfig] = None,
) -> BatchResult:
    """Vectorize a batch with a default Vectorizer."""
    return Vectorizer(config).process_files(uploads, mode)
