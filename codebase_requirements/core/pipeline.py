"""End-to-end pipeline: ZIP archive -> project record -> requirements document.

The pipeline wires the configured store, model clients and worker together,
drives one run to a terminal or paused state, and writes the run artifacts
(document and report) to the run directory.
"""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path

from ..config import AppConfig
from ..utils import EventEmitter, build_file_tree, format_duration, format_progress
from .clients import AnalysisClient, SynthesisClient, TextModel
from .models import (
    AnalysisCompleteEvent,
    ExtractionResult,
    ProgressEvent,
    ProjectRecord,
    ProjectStatus,
)
from .prompts import ANALYSIS_TEMPLATE, SYNTHESIS_TEMPLATE, load_template
from .store import ProjectStore
from .worker import ProcessingWorker

logger = logging.getLogger(__name__)

REPORT_FILENAME = "report.txt"


@dataclass
class PipelineResult:
    """Outcome of one pipeline run."""
    project: ProjectRecord
    duration_seconds: float
    document_path: Path | None = None
    report_path: Path | None = None
    file_durations: dict[str, float] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.project.status == ProjectStatus.COMPLETED


class FileTimer:
    """Measures per-file analysis time from worker events."""

    def __init__(self):
        self.durations: dict[str, float] = {}
        self._started: dict[str, float] = {}

    def reset(self) -> None:
        # fresh dicts; earlier results keep their own
        self.durations = {}
        self._started = {}

    def attach(self, emitter: EventEmitter) -> None:
        emitter.on(ProgressEvent, self._on_progress)
        emitter.on(AnalysisCompleteEvent, self._on_complete)

    def _on_progress(self, event: ProgressEvent) -> None:
        self._started[event.path] = time.monotonic()

    def _on_complete(self, event: AnalysisCompleteEvent) -> None:
        start = self._started.pop(event.analysis.path, None)
        if start is not None:
            self.durations[event.analysis.path] = time.monotonic() - start


class RequirementsPipeline:
    """Runs the file-processing worker for one archive or stored project.

    Example:
        emitter = EventEmitter()
        CLIPresenter().attach_to_worker(emitter)

        pipeline = RequirementsPipeline(config, store, model, emitter)
        result = await pipeline.run(Path("shop.zip"), run_dir)
    """

    def __init__(
        self,
        config: AppConfig,
        store: ProjectStore,
        model: TextModel | None,
        emitter: EventEmitter | None = None,
    ):
        self.config = config
        self.store = store
        self.emitter = emitter or EventEmitter()
        self.timer = FileTimer()
        self.timer.attach(self.emitter)
        self.worker = self._build_worker(model)

    def _build_worker(self, model: TextModel | None) -> ProcessingWorker:
        project = self.config.project
        analysis = AnalysisClient(
            model,
            self.config.retry,
            template=load_template(project.analysis_prompt_file, ANALYSIS_TEMPLATE),
            max_file_chars=self.config.processing.max_file_chars,
        )
        synthesis = SynthesisClient(
            model,
            self.config.retry,
            template=load_template(project.synthesis_prompt_file, SYNTHESIS_TEMPLATE),
            temperature=self.config.model.synthesis_temperature,
        )
        return ProcessingWorker(
            self.store, analysis, synthesis, self.emitter, self.config.processing
        )

    async def run(self, zip_path: Path, run_dir: Path) -> PipelineResult:
        """Process an archive from scratch."""
        self.timer.reset()
        started = time.monotonic()

        project_id = await self.worker.start(zip_path, project_name=zip_path.name)
        logger.info("Started project %s for %s", project_id, zip_path)
        await self.worker.wait()

        return self._finish(project_id, run_dir, started, zip_path.name)

    async def resume(self, project_id: str, run_dir: Path) -> PipelineResult:
        """Continue a stored project from where it stopped."""
        self.timer.reset()
        started = time.monotonic()

        await self.worker.resume_project(project_id)
        await self.worker.wait()

        record = self.store.get(project_id)
        name = record.project_name if record else project_id
        return self._finish(project_id, run_dir, started, name)

    def pause(self) -> None:
        self.worker.pause()

    def _finish(
        self,
        project_id: str,
        run_dir: Path,
        started: float,
        source_name: str,
    ) -> PipelineResult:
        record = self.store.get(project_id)
        result = PipelineResult(
            project=record,
            duration_seconds=time.monotonic() - started,
            file_durations=self.timer.durations,
        )

        if record.status == ProjectStatus.COMPLETED:
            document_path = run_dir / self.config.project.document_file
            document_path.write_text(record.requirements_document, encoding='utf-8')
            result.document_path = document_path
            logger.info("Document saved: %s", document_path)

        result.report_path = run_dir / REPORT_FILENAME
        write_report(result.report_path, source_name, result, self.worker.extraction)
        return result


def write_report(
    report_path: Path,
    source_name: str,
    result: PipelineResult,
    extraction: ExtractionResult | None,
) -> None:
    """Write the execution report for one run."""
    record = result.project
    with report_path.open('w', encoding='utf-8') as rep:
        rep.write("--- EXECUTION REPORT ---\n")
        rep.write(f"Date: {time.strftime('%Y-%m-%d %H:%M:%S')}\n")
        rep.write(f"Source: {source_name}\n")
        rep.write(f"Project: {record.id}\n")
        rep.write(f"Status: {record.status.value}\n")
        if record.error:
            rep.write(f"Error: {record.error}\n")
        rep.write(
            f"Analysed: {format_progress(len(record.file_analyses), record.total_files)}\n"
        )
        rep.write(f"Total time: {format_duration(result.duration_seconds)}\n\n")

        if extraction is not None:
            rep.write("--- ARCHIVE CONTENTS ---\n")
            rep.write(build_file_tree(extraction.all_paths, extraction.skipped))
            rep.write(
                f"\n\nFiles in archive: {len(extraction.all_paths)}"
                f"\nText files: {len(extraction.entries)}"
                f"\nSkipped: {len(extraction.skipped)}\n\n"
            )

        if result.file_durations:
            durations = result.file_durations
            slowest = sorted(durations.items(), key=lambda kv: kv[1], reverse=True)[:5]
            rep.write("--- ANALYSIS TIMING ---\n")
            rep.write(f"Files analysed this run: {len(durations)}\n")
            rep.write(
                f"Average per file: {format_duration(sum(durations.values()) / len(durations))}\n"
            )
            rep.write("Slowest files:\n")
            for path, seconds in slowest:
                rep.write(f" - {path}: {format_duration(seconds)}\n")
            rep.write("\n")
