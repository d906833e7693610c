"""Processing worker: walks a project's files one at a time.

The worker owns at most one ``WorkerSession``. A session drives the status
machine ``idle -> unzipping -> analyzing <-> paused -> generating ->
completed`` (``error`` reachable from every non-terminal state), persists
each step through the project store, and publishes events in the order
things happen.

Pausing and superseding take effect at file boundaries: an analysis call
already in flight is allowed to finish. A paused session records its result
and stops; a superseded session discards it.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Sequence

from ..config import ProcessingConfig
from ..utils.events import EventEmitter
from .clients import AnalysisClient, SynthesisClient
from .errors import (
    AnalysisError,
    CredentialError,
    ExtractionError,
    InvalidTransitionError,
    PreconditionError,
    ProjectNotFoundError,
    SynthesisError,
)
from .extractor import extract_archive
from .models import (
    AllAnalysesCompleteEvent,
    AnalysisCompleteEvent,
    ErrorEvent,
    ExtractionResult,
    FileAnalysis,
    FileEntry,
    ProgressEvent,
    ProjectRecord,
    ProjectStatus,
    StatusChangedEvent,
    can_transition,
)
from .store import ProjectStore

logger = logging.getLogger(__name__)

S = ProjectStatus

EMPTY_ARCHIVE_MESSAGE = "The archive contains no readable text files."
SYNTHESIS_FAILED_MESSAGE = (
    "Failed to generate the final document. An issue occurred with the AI model."
)
CRITICAL_MESSAGE = "A critical error occurred during file analysis."


def analysis_failed_message(path: str) -> str:
    return f"Failed to analyze file: {path}. Processing has stopped."


@dataclass
class WorkerSession:
    """Transient state of one processing run. Never persisted."""
    project_id: str
    analysis_client: AnalysisClient
    synthesis_client: SynthesisClient
    files: list[FileEntry] = field(default_factory=list)
    analyzed: set[str] = field(default_factory=set)
    cursor: int = 0
    paused: bool = False
    cancelled: bool = False
    task: asyncio.Task | None = None


class ProcessingWorker:
    """Drives one project at a time through extraction, analysis and synthesis.

    Example:
        worker = ProcessingWorker(store, analysis_client, synthesis_client, emitter)
        project_id = await worker.start(zip_bytes, project_name="shop.zip")
        await worker.wait()
    """

    def __init__(
        self,
        store: ProjectStore,
        analysis_client: AnalysisClient,
        synthesis_client: SynthesisClient,
        emitter: EventEmitter | None = None,
        processing: ProcessingConfig | None = None,
    ):
        self.store = store
        self.analysis_client = analysis_client
        self.synthesis_client = synthesis_client
        self.emitter = emitter or EventEmitter()
        self.processing = processing or ProcessingConfig()
        self.session: WorkerSession | None = None
        # UI mirror of the active project; the store is authoritative
        self.project: ProjectRecord | None = None
        self.extraction: ExtractionResult | None = None
        self._tasks: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # control surface
    # ------------------------------------------------------------------

    @property
    def status(self) -> ProjectStatus | None:
        return self.project.status if self.project else None

    async def start(
        self,
        source: bytes | Path | str | Sequence[FileEntry],
        *,
        project_name: str | None = None,
        project_id: str | None = None,
    ) -> str:
        """Begin a new run over an archive or an already-resolved file list.

        Without ``project_id`` a new project record is created; an existing
        record must still be idle. Any previous session is superseded only
        once the new run has been accepted.

        Returns:
            The id of the project being processed
        """
        if project_id is None:
            project_id = self.store.create(project_name or _default_name(source))
        record = self._load(project_id)
        if record.status != S.IDLE:
            raise PreconditionError(
                f"Project '{project_id}' is '{record.status.value}', expected 'idle'."
            )

        self.dispose()
        session = self._new_session(project_id)
        self.project = record
        self.extraction = None
        self._spawn(session, self._run(session, source))
        return project_id

    async def resume_project(self, project_id: str) -> None:
        """Start a new session that continues a stored run.

        Paused or failed runs continue at the first unanalysed file; a run
        whose analyses are all present re-enters document generation.
        """
        if (
            self.session is not None
            and self.session.project_id == project_id
            and self.status == S.PAUSED
        ):
            self.resume()
            return

        record = self._load(project_id)
        if record.status == S.COMPLETED:
            raise PreconditionError(f"Project '{project_id}' is already completed.")
        if record.status in (S.IDLE, S.UNZIPPING) or record.total_files == 0:
            raise PreconditionError(
                f"Project '{project_id}' has no file list; start it again from the archive."
            )

        self.dispose()
        session = self._new_session(project_id)
        session.files = list(record.files_to_process)
        session.analyzed = record.analyzed_paths
        self.project = record
        self._spawn(session, self._continue(session))

    def pause(self) -> None:
        """Stop before the next file; the file in flight still completes."""
        session = self.session
        if session is None or self.status != S.ANALYZING:
            logger.debug("Pause ignored in status %s", self.status)
            return
        session.paused = True
        logger.info("Pause requested for project %s", session.project_id)

    def resume(self) -> None:
        """Continue a paused session at the first unanalysed file."""
        session = self.session
        if session is None or not session.paused:
            logger.debug("Resume ignored: session is not paused")
            return
        session.paused = False
        # The loop only stops once it has recorded PAUSED. Before that it is
        # still running and will simply carry on.
        if self.status == S.PAUSED:
            # back to ANALYZING right away so a pause() issued before the
            # new task runs is honoured
            self._set_status(session, S.ANALYZING, error=None)
            self._spawn(session, self._continue(session))

    def dispose(self) -> None:
        """Supersede the current session. Late results are discarded."""
        session = self.session
        if session is None:
            return
        session.cancelled = True
        self.session = None
        logger.info("Session for project %s superseded", session.project_id)

    async def wait(self) -> None:
        """Wait until every task started by this worker has finished."""
        while True:
            pending = [t for t in self._tasks if not t.done()]
            if not pending:
                return
            await asyncio.gather(*pending)

    # ------------------------------------------------------------------
    # run stages
    # ------------------------------------------------------------------

    async def _run(self, session: WorkerSession, source) -> None:
        if self._superseded(session):
            return
        if _is_archive(source):
            self._set_status(session, S.UNZIPPING)
            try:
                result = await asyncio.to_thread(extract_archive, source, self.processing)
            except ExtractionError as e:
                if not self._superseded(session):
                    self._fail(session, str(e))
                return
            if self._superseded(session):
                return
            self.extraction = result
            entries = result.entries
        else:
            entries = _unique_entries(source)

        if self._superseded(session):
            return
        if not entries:
            self._fail(session, EMPTY_ARCHIVE_MESSAGE)
            return

        session.files = entries
        self._persist(session, total_files=len(entries), files_to_process=entries)
        self._set_status(session, S.ANALYZING)
        await self._process(session)

    async def _continue(self, session: WorkerSession) -> None:
        if self._superseded(session):
            return
        pending = [f for f in session.files if f.path not in session.analyzed]
        if pending or self.status == S.PAUSED:
            if self.status != S.ANALYZING:
                self._set_status(session, S.ANALYZING, error=None)
            await self._process(session)
        else:
            if self.status != S.GENERATING:
                self._set_status(session, S.GENERATING, error=None)
            await self._generate(session)

    async def _process(self, session: WorkerSession) -> None:
        total = len(session.files)

        while True:
            if self._superseded(session):
                return
            entry = self._next_entry(session)
            if entry is None:
                break
            if session.paused:
                self._set_status(session, S.PAUSED)
                return

            self.emitter.emit(ProgressEvent(path=entry.path, index=session.cursor + 1, total=total))
            try:
                text = await session.analysis_client.analyze_file(entry.path, entry.content)
            except (AnalysisError, CredentialError) as e:
                if self._superseded(session):
                    return
                logger.error("Analysis of %s failed: %s", entry.path, e)
                self._fail(session, analysis_failed_message(entry.path), path=entry.path)
                return

            if self._superseded(session):
                logger.info("Discarding analysis of %s from a superseded session", entry.path)
                return

            analysis = FileAnalysis(path=entry.path, analysis=text)
            self.store.append_analysis(session.project_id, analysis)
            self.project.file_analyses.append(analysis)
            self.project.last_processed_file = analysis.path
            session.analyzed.add(analysis.path)
            session.cursor += 1
            logger.debug("Analysed %s (%d/%d)", entry.path, len(session.analyzed), total)
            self.emitter.emit(AnalysisCompleteEvent(analysis=analysis))

            # let the host breathe between files
            await asyncio.sleep(0)

        self.emitter.emit(AllAnalysesCompleteEvent(total=total))
        self._set_status(session, S.GENERATING)
        await self._generate(session)

    async def _generate(self, session: WorkerSession) -> None:
        record = self._load(session.project_id)
        try:
            document = await session.synthesis_client.synthesize(record.file_analyses)
        except (SynthesisError, CredentialError, PreconditionError) as e:
            if self._superseded(session):
                return
            logger.error("Document generation failed: %s", e)
            self._fail(session, SYNTHESIS_FAILED_MESSAGE)
            return

        if self._superseded(session):
            logger.info("Discarding document from a superseded session")
            return
        self._set_status(session, S.COMPLETED, requirements_document=document)

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def _new_session(self, project_id: str) -> WorkerSession:
        session = WorkerSession(
            project_id=project_id,
            analysis_client=self.analysis_client,
            synthesis_client=self.synthesis_client,
        )
        self.session = session
        return session

    def _spawn(self, session: WorkerSession, coro) -> None:
        task = asyncio.get_running_loop().create_task(self._guarded(session, coro))
        session.task = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _guarded(self, session: WorkerSession, coro) -> None:
        try:
            await coro
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Unexpected failure in project %s", session.project_id)
            if not self._superseded(session):
                self._fail(session, CRITICAL_MESSAGE)

    def _superseded(self, session: WorkerSession) -> bool:
        return session.cancelled or session is not self.session

    def _next_entry(self, session: WorkerSession) -> FileEntry | None:
        while session.cursor < len(session.files):
            entry = session.files[session.cursor]
            if entry.path not in session.analyzed:
                return entry
            session.cursor += 1
        return None

    def _load(self, project_id: str) -> ProjectRecord:
        record = self.store.get(project_id)
        if record is None:
            raise ProjectNotFoundError(project_id)
        return record

    def _persist(self, session: WorkerSession, **fields: Any) -> None:
        self.store.update(session.project_id, **fields)
        for name, value in fields.items():
            setattr(self.project, name, value)

    def _set_status(self, session: WorkerSession, status: ProjectStatus, **fields: Any) -> None:
        current = self.project.status
        if not can_transition(current, status):
            raise InvalidTransitionError(
                f"Illegal status change {current.value} -> {status.value}"
            )
        self._persist(session, status=status, **fields)
        logger.info("Project %s: %s -> %s", session.project_id, current.value, status.value)
        self.emitter.emit(StatusChangedEvent(project_id=session.project_id, status=status))

    def _fail(self, session: WorkerSession, message: str, path: str | None = None) -> None:
        if self.project.status.is_terminal:
            logger.warning("Ignoring error in %s project: %s", self.project.status.value, message)
            return
        try:
            self._set_status(session, S.ERROR, error=message)
        finally:
            self.emitter.emit(ErrorEvent(message=message, path=path))


def _is_archive(source) -> bool:
    return isinstance(source, (bytes, bytearray, str, Path))


def _unique_entries(files: Sequence[FileEntry]) -> list[FileEntry]:
    entries = []
    seen = set()
    for entry in files:
        if entry.path in seen:
            logger.warning("Duplicate path %s ignored", entry.path)
            continue
        seen.add(entry.path)
        entries.append(entry)
    return entries


def _default_name(source) -> str:
    if isinstance(source, (str, Path)):
        return Path(source).name
    if isinstance(source, (bytes, bytearray)):
        return "archive.zip"
    return "file list"
