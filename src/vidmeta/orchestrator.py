"""Batch orchestration: pair, transform and commit records in parallel.

Each record runs through one worker thread:

    DISCOVERED -> META_OPENED -> META_TRANSFORMED -> [MUX_REQUESTED -> MUXED]
        -> FILENAME_COMPUTED -> COMMITTED

or stops in FAILED/CANCELED. A failure never leaves its record; the batch
carries on with the rest. SIGINT/SIGTERM set a shared stop event: no new
record starts, and running records stop at their next checkpoint.
"""

from __future__ import annotations

import logging
import signal
import sys
import threading
import time
from collections.abc import Callable, Iterable
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import click

from vidmeta.committer import delete_metafile, move, write_results
from vidmeta.config.models import VidmetaConfig
from vidmeta.exceptions import (
    ErrorKind,
    MatchError,
    MetaIOError,
    MuxerError,
    OperationCanceled,
    VidmetaError,
)
from vidmeta.logging import worker_context
from vidmeta.muxer import FfmpegMuxer, build_field_map
from vidmeta.ops.models import FilenameOps, MetaOps
from vidmeta.pairing import FileFilters, pair_files
from vidmeta.prompt import OverwritePrompter, PromptState
from vidmeta.records import BatchPair, FileRecord, RecordOps, RecordState
from vidmeta.resources import ResourceGate
from vidmeta.sidecar import open_sidecar
from vidmeta.transform import FilenameTransformer, MetaTransformer
from vidmeta.transform.filename import new_meta_name

logger = logging.getLogger(__name__)

# Serializes per-record status lines from worker threads
_output_lock = threading.Lock()


# =============================================================================
# Worker Count Utilities
# =============================================================================


def resolve_worker_count(requested: int | None, config_default: int) -> int:
    """Resolve the effective worker count.

    An explicit request wins over the configured default. Anything below one
    runs a single worker.
    """
    effective = requested if requested is not None else config_default
    if effective < 1:
        logger.warning("Worker count %d is below 1, using 1", effective)
        return 1
    return effective


# =============================================================================
# Progress Tracking
# =============================================================================


class ProgressTracker:
    """Thread-safe progress line on stderr, updated in place."""

    def __init__(self, total: int, enabled: bool = True) -> None:
        self.total = total
        self.completed = 0
        self.active = 0
        self.enabled = enabled
        self._lock = threading.Lock()

    def start_file(self) -> None:
        with self._lock:
            self.active += 1
            completed, total, active = self.completed, self.total, self.active
        self._update_display(completed, total, active)

    def complete_file(self) -> None:
        with self._lock:
            self.active -= 1
            self.completed += 1
            completed, total, active = self.completed, self.total, self.active
        self._update_display(completed, total, active)

    def _update_display(self, completed: int, total: int, active: int) -> None:
        if self.enabled:
            sys.stderr.write(f"\rProcessing: {completed}/{total} [{active} active]")
            sys.stderr.flush()

    def finish(self) -> None:
        """End the progress line with a newline."""
        if self.enabled:
            sys.stderr.write("\n")
            sys.stderr.flush()


# =============================================================================
# Results
# =============================================================================


@dataclass
class RecordResult:
    """Outcome of one record."""

    record: FileRecord
    success: bool
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        record = self.record
        failure = record.failure
        return {
            "video": str(record.original_video_path),
            "meta": str(record.meta_path),
            "success": self.success,
            "state": record.state.value,
            "final_video": (
                str(record.final_video_path) if record.final_video_path else None
            ),
            "final_meta": (
                str(record.final_meta_path) if record.final_meta_path else None
            ),
            "error": (
                {
                    "kind": failure.kind.value,
                    "message": failure.message,
                    "at": failure.at.value,
                }
                if failure
                else None
            ),
        }


@dataclass
class PairFailure:
    """A batch pair that produced no records."""

    pair: BatchPair
    kind: ErrorKind
    message: str


@dataclass
class BatchSummary:
    """Outcome of a whole batch."""

    results: list[RecordResult] = field(default_factory=list)
    pair_failures: list[PairFailure] = field(default_factory=list)
    interrupted: bool = False
    duration_seconds: float = 0.0

    @property
    def ok_count(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed_count(self) -> int:
        return sum(1 for r in self.results if not r.success)

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": {
                "total": len(self.results),
                "success": self.ok_count,
                "failed": self.failed_count,
                "interrupted": self.interrupted,
                "duration_seconds": round(self.duration_seconds, 2),
            },
            "pair_failures": [
                {
                    "video": str(f.pair.video),
                    "meta": str(f.pair.meta),
                    "kind": f.kind.value,
                    "message": f.message,
                }
                for f in self.pair_failures
            ],
            "results": [r.to_dict() for r in self.results],
        }


# =============================================================================
# Orchestrator
# =============================================================================


class BatchOrchestrator:
    """Runs every record of every batch pair through the pipeline."""

    def __init__(
        self,
        config: VidmetaConfig,
        meta_ops: MetaOps | None = None,
        filename_ops: FilenameOps | None = None,
        *,
        overwrite: bool = False,
        prompter: OverwritePrompter | None = None,
        stop_event: threading.Event | None = None,
        muxer: FfmpegMuxer | None = None,
        gate: ResourceGate | None = None,
        echo: bool = True,
        show_progress: bool = False,
        handle_signals: bool = True,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            config: Runtime settings.
            meta_ops: Metadata operations applied to every record.
            filename_ops: Filename operations applied to every record.
            overwrite: Overwrite existing fields without asking (per record).
            prompter: Overwrite prompter; built from the config if None.
            stop_event: Shared cancel flag; created if None.
            muxer: Muxer to embed metadata; built from the config when
                muxing is enabled and None is passed.
            gate: Resource gate; built from the config if None.
            echo: Print ``[OK]``/``[FAILED]`` lines.
            show_progress: Show the progress line on stderr.
            handle_signals: Install SIGINT/SIGTERM handlers during run().
        """
        self.config = config
        self.ops = RecordOps(
            meta=meta_ops or MetaOps(), filename=filename_ops or FilenameOps()
        )
        self.overwrite = overwrite
        self.stop_event = stop_event or threading.Event()
        self.prompter = prompter or OverwritePrompter(
            state=PromptState(
                overwrite_all=config.transform.meta_overwrite,
                preserve_all=config.transform.meta_preserve,
            ),
            stop_event=self.stop_event,
        )
        if muxer is None and config.muxer.enabled:
            muxer = FfmpegMuxer(
                ffmpeg=config.muxer.ffmpeg,
                ffprobe=config.muxer.ffprobe,
                timeout=config.muxer.timeout,
            )
        self.muxer = muxer
        self.gate = gate or ResourceGate(
            max_cpu_pct=config.processing.max_cpu_pct,
            min_free_mem_bytes=config.processing.min_free_mem_bytes,
            stop_event=self.stop_event,
        )
        self.meta_transformer = MetaTransformer(self.prompter)
        self.filename_transformer = FilenameTransformer(
            style=config.transform.naming_style,
            meta_prefix_fields=config.transform.filename_meta_prefix,
        )
        self.echo = echo
        self.show_progress = show_progress
        self.handle_signals = handle_signals

    # -------------------------------------------------------------------------
    # Discovery
    # -------------------------------------------------------------------------

    def collect(
        self, pairs: Iterable[BatchPair]
    ) -> tuple[list[FileRecord], list[PairFailure]]:
        """Pair every batch pair into records.

        A pair that fails to match or scan is reported and skipped.

        Raises:
            ConfigError: If a pair is invalid.
        """
        processing = self.config.processing
        filters = FileFilters(
            prefix=self.config.filters.prefix,
            suffix=self.config.filters.suffix,
            contains=self.config.filters.contains,
            omits=self.config.filters.omits,
        )
        records: list[FileRecord] = []
        failures: list[PairFailure] = []
        seen: set[Path] = set()

        for pair in pairs:
            try:
                matched = pair_files(
                    pair,
                    video_extensions=processing.video_extensions,
                    meta_extensions=processing.meta_extensions,
                    filters=filters,
                )
            except (MatchError, MetaIOError) as e:
                logger.error("Batch pair %s : %s failed: %s", pair.video, pair.meta, e)
                failures.append(PairFailure(pair=pair, kind=e.kind, message=e.message))
                self._emit(f"[FAILED] {pair.video} ({e.kind.value}): {e.message}")
                continue

            for record in matched:
                if record.original_video_path in seen:
                    logger.warning(
                        "Skipping %s: already queued by another batch pair",
                        record.original_video_path,
                    )
                    continue
                seen.add(record.original_video_path)
                record.ops = self.ops
                record.overwrite = self.overwrite
                records.append(record)

        return records, failures

    # -------------------------------------------------------------------------
    # Batch
    # -------------------------------------------------------------------------

    def run(self, pairs: Iterable[BatchPair]) -> BatchSummary:
        """Process every batch pair.

        Returns:
            The batch summary. ``interrupted`` is set when a signal stopped
            the batch early.

        Raises:
            ConfigError: If a batch pair is invalid.
        """
        start = time.time()
        records, pair_failures = self.collect(pairs)
        summary = BatchSummary(pair_failures=pair_failures)

        restore = self._install_signal_handlers()
        try:
            summary.results = self._run_records(records)
        finally:
            restore()

        summary.interrupted = self.stop_event.is_set()
        summary.duration_seconds = time.time() - start
        logger.info(
            "Batch finished: %d ok, %d failed, %d pair(s) unmatched%s",
            summary.ok_count,
            summary.failed_count,
            len(summary.pair_failures),
            " (interrupted)" if summary.interrupted else "",
        )
        return summary

    def _run_records(self, records: list[FileRecord]) -> list[RecordResult]:
        if not records:
            return []

        workers = resolve_worker_count(None, self.config.processing.workers)
        progress = ProgressTracker(total=len(records), enabled=self.show_progress)
        results: list[RecordResult] = []
        file_id_width = len(str(len(records)))

        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures: dict[Future[RecordResult], FileRecord] = {}
            for idx, record in enumerate(records, start=1):
                if self.stop_event.is_set():
                    break
                # Logical slot, not the thread actually running the record
                worker_id = f"{((idx - 1) % workers) + 1:02d}"
                file_id = f"F{idx:0{file_id_width}d}"
                future = executor.submit(
                    self._process_record, record, progress, worker_id, file_id
                )
                futures[future] = record

            try:
                for future in as_completed(futures):
                    results.append(future.result())
            except KeyboardInterrupt:
                self.stop_event.set()
                self._emit("\nInterrupted - waiting for active workers to complete...")
                for f in futures:
                    f.cancel()
                executor.shutdown(wait=True, cancel_futures=True)
                results = [
                    f.result() for f in futures if f.done() and not f.cancelled()
                ]

        progress.finish()

        # Records never submitted or cancelled before starting
        finished = {id(r.record) for r in results}
        for record in records:
            if id(record) not in finished:
                record.fail(
                    ErrorKind.OPERATION_CANCELED, "batch canceled", canceled=True
                )
                results.append(RecordResult(record, False, "batch canceled"))
        return results

    def _install_signal_handlers(self) -> Callable[[], None]:
        """Install SIGINT/SIGTERM handlers; returns a function restoring them."""
        if not self.handle_signals or (
            threading.current_thread() is not threading.main_thread()
        ):
            return lambda: None

        def handler(signum: int, frame: object) -> None:
            if not self.stop_event.is_set():
                logger.warning(
                    "Received %s, finishing active records...",
                    signal.Signals(signum).name,
                )
            self.stop_event.set()

        previous = {
            sig: signal.signal(sig, handler) for sig in (signal.SIGINT, signal.SIGTERM)
        }

        def restore() -> None:
            for sig, old in previous.items():
                signal.signal(sig, old)

        return restore

    # -------------------------------------------------------------------------
    # Per record
    # -------------------------------------------------------------------------

    def _process_record(
        self,
        record: FileRecord,
        progress: ProgressTracker,
        worker_id: str,
        file_id: str,
    ) -> RecordResult:
        """Worker entry point: run one record and report its outcome."""
        if self.stop_event.is_set():
            record.fail(ErrorKind.OPERATION_CANCELED, "batch canceled", canceled=True)
            return RecordResult(record, False, "batch canceled")

        progress.start_file()
        try:
            with worker_context(worker_id, file_id, record.original_video_path):
                logger.info("=== FILE %s: %s", file_id, record.original_video_path)
                try:
                    self.gate.wait()
                    self.process(record)
                except VidmetaError as e:
                    return self._failed(
                        record,
                        e.kind,
                        e.message,
                        canceled=isinstance(e, OperationCanceled),
                    )
                except Exception as e:
                    logger.exception(
                        "Unexpected error processing %s", record.original_video_path
                    )
                    return self._failed(record, ErrorKind.IO, str(e))

                message = self._describe(record)
                self._emit(f"[OK] {message}")
                return RecordResult(record, True, message)
        finally:
            progress.complete_file()

    def process(self, record: FileRecord) -> None:
        """Run the full pipeline for one record.

        Raises:
            VidmetaError: On any record-level failure.
        """
        sidecar = open_sidecar(
            record.meta_path,
            record.meta_kind,
            backup=self.config.transform.backup,
            transformer=self.meta_transformer,
        )
        try:
            record.advance(RecordState.META_OPENED)

            self._checkpoint()
            if sidecar.make_meta_edits(record):
                logger.info("Updated metadata in %s", record.meta_path.name)
            self._checkpoint()
            if sidecar.make_date_tag_edits(record):
                logger.info("Updated date tags in %s", record.meta_path.name)
            record.advance(RecordState.META_TRANSFORMED)

            meta = sidecar.decode()
            if self.muxer is not None:
                self._checkpoint()
                self._mux(record, meta)

            new_stem = self._compute_stem(record, meta)
            record.advance(RecordState.FILENAME_COMPUTED)
        finally:
            # The lock must be released before the sidecar is renamed
            sidecar.close()

        self._checkpoint()
        self._commit(record, new_stem)
        record.advance(RecordState.COMMITTED)

    def _checkpoint(self) -> None:
        if self.stop_event.is_set():
            raise OperationCanceled("batch canceled")

    def _mux(self, record: FileRecord, meta: dict[str, Any]) -> None:
        assert self.muxer is not None
        record.advance(RecordState.MUX_REQUESTED)
        field_map = build_field_map(meta)
        video = record.original_video_path
        try:
            applied = self.muxer.already_applied(video, field_map)
        except MuxerError as e:
            logger.debug("Could not probe %s, muxing anyway: %s", video, e.message)
            applied = False

        if applied:
            record.meta_already_applied = True
            logger.info("Container metadata already up to date in %s", video.name)
        else:
            self.muxer.mux(video, field_map)
        record.advance(RecordState.MUXED)

    def _compute_stem(self, record: FileRecord, meta: dict[str, Any]) -> str:
        filename_ops = record.ops.filename
        record.computed = self.filename_transformer.compute_tags(
            record.video_base, meta, filename_ops
        )
        if self.filename_transformer.is_noop(filename_ops):
            return record.video_base
        return self.filename_transformer.transform(
            record.video_base, meta, filename_ops, record.computed
        )

    def _commit(self, record: FileRecord, new_stem: str) -> None:
        transform = self.config.transform
        new_video = record.video_dir / f"{new_stem}{record.video_ext}"
        new_meta = record.meta_dir / new_meta_name(
            record.meta_path.name, record.video_base, new_stem
        )
        final_video, final_meta = write_results(
            record.original_video_path, new_video, record.meta_path, new_meta
        )

        if transform.output_dir is not None:
            moved = move(final_video, final_meta, transform.output_dir)
            for result in moved:
                result.raise_for_error()
            final_video = moved[0].destination_path or final_video
            final_meta = moved[1].destination_path or final_meta

        record.final_video_path = final_video
        record.final_meta_path = final_meta
        if delete_metafile(final_meta, transform.purge_metafile):
            record.final_meta_path = None

    # -------------------------------------------------------------------------
    # Output
    # -------------------------------------------------------------------------

    def _failed(
        self,
        record: FileRecord,
        kind: ErrorKind,
        message: str,
        canceled: bool = False,
    ) -> RecordResult:
        record.fail(kind, message, canceled=canceled)
        if canceled:
            logger.warning("Canceled %s: %s", record.original_video_path, message)
        else:
            logger.error(
                "Failed %s (%s): %s", record.original_video_path, kind.value, message
            )
        self._emit(f"[FAILED] {record.original_video_path} ({kind.value}): {message}")
        return RecordResult(record, False, message)

    @staticmethod
    def _describe(record: FileRecord) -> str:
        old = record.original_video_path.name
        final = record.final_video_path
        if final is None:
            return f"{old} -> {old}"
        if final.parent != record.original_video_path.parent:
            return f"{old} -> {final}"
        return f"{old} -> {final.name}"

    def _emit(self, line: str) -> None:
        if self.echo:
            with _output_lock:
                click.echo(line)
