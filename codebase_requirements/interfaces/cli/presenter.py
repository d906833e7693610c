"""CLI presentation layer for the requirements generator.

This module handles all visual feedback in the CLI using Halo spinners
and rich tables, and subscribes to worker events for progress tracking.
"""

from typing import Optional

from halo import Halo
from rich import box
from rich.console import Console
from rich.table import Table

from ...core.models import (
    AllAnalysesCompleteEvent,
    AnalysisCompleteEvent,
    ErrorEvent,
    ProgressEvent,
    ProjectRecord,
    ProjectStatus,
    StatusChangedEvent,
)
from ...utils import format_duration, format_progress, format_timestamp
from ...utils.events import EventEmitter

STATUS_TEXT = {
    ProjectStatus.UNZIPPING: 'Decompressing archive...',
    ProjectStatus.ANALYZING: 'Analyzing codebase...',
    ProjectStatus.GENERATING: 'Synthesizing requirements document...',
}

STATUS_STYLE = {
    ProjectStatus.COMPLETED: 'green',
    ProjectStatus.ERROR: 'red',
    ProjectStatus.PAUSED: 'yellow',
}


class CLIPresenter:
    """Displays worker progress in the CLI with spinners.

    Subscribes to worker events and provides visual feedback:
    - Halo spinners for unzipping, analysis and synthesis
    - Per-file progress while analysing
    - Success/failure messages

    Example:
        emitter = EventEmitter()
        presenter = CLIPresenter()
        presenter.attach_to_worker(emitter)
    """

    def __init__(self):
        """Initialize CLI presenter."""
        self.current_spinner: Optional[Halo] = None
        self.project_id: Optional[str] = None
        # project-wide counts, taken from the worker's 1-based file index
        self.analysed = 0
        self.total = 0
        self._in_flight = 0

    def attach_to_worker(self, emitter: EventEmitter):
        """Subscribe to worker events.

        Args:
            emitter: Event emitter shared with the worker
        """
        emitter.on(StatusChangedEvent, self._on_status)
        emitter.on(ProgressEvent, self._on_progress)
        emitter.on(AnalysisCompleteEvent, self._on_analysis_complete)
        emitter.on(AllAnalysesCompleteEvent, self._on_all_complete)
        emitter.on(ErrorEvent, self._on_error)

    def _start_spinner(self, text: str):
        if self.current_spinner:
            self.current_spinner.stop()
        self.current_spinner = Halo(text=text, spinner='dots')
        self.current_spinner.start()

    def _succeed(self, text: str):
        if self.current_spinner:
            self.current_spinner.succeed(text)
            self.current_spinner = None

    def _on_status(self, event: StatusChangedEvent):
        if event.project_id != self.project_id:
            self.project_id = event.project_id
            self.analysed = self.total = self._in_flight = 0
        status = event.status
        if status == ProjectStatus.UNZIPPING:
            self._start_spinner(STATUS_TEXT[status])
        elif status == ProjectStatus.ANALYZING:
            self._succeed('Archive ready')
            self._start_spinner(STATUS_TEXT[status])
        elif status == ProjectStatus.GENERATING:
            self._start_spinner(STATUS_TEXT[status])
        elif status == ProjectStatus.PAUSED:
            if self.current_spinner:
                self.current_spinner.warn(
                    f'Analysis paused after {self.analysed}/{self.total} files'
                )
                self.current_spinner = None
        elif status == ProjectStatus.COMPLETED:
            self._succeed('Requirements document generated')

    def _on_progress(self, event: ProgressEvent):
        """Show the file currently being analysed."""
        self.total = event.total
        self._in_flight = event.index
        if self.current_spinner:
            self.current_spinner.text = f'Analyzing [{event.index}/{event.total}] {event.path}'

    def _on_analysis_complete(self, event: AnalysisCompleteEvent):
        self.analysed = self._in_flight

    def _on_all_complete(self, event: AllAnalysesCompleteEvent):
        self._succeed(f'Analysis complete ({event.total} files)')

    def _on_error(self, event: ErrorEvent):
        if self.current_spinner:
            self.current_spinner.fail(event.message)
            self.current_spinner = None
        else:
            self.print_error(event.message)

    @staticmethod
    def render_projects(projects: list[ProjectRecord], console: Console | None = None):
        """Print stored projects as a table, newest first."""
        table = Table(box=box.SIMPLE, header_style=None)
        table.add_column("ID", no_wrap=True)
        table.add_column("Name")
        table.add_column("Created", no_wrap=True)
        table.add_column("Status", no_wrap=True)
        table.add_column("Progress", no_wrap=True, justify="right")

        for p in projects:
            style = STATUS_STYLE.get(p.status)
            status = f"[{style}]{p.status.value}[/{style}]" if style else p.status.value
            table.add_row(
                p.id,
                p.project_name,
                format_timestamp(p.created_at),
                status,
                format_progress(len(p.file_analyses), p.total_files),
            )

        (console or Console()).print(table)

    @staticmethod
    def render_project(project: ProjectRecord, console: Console | None = None):
        """Print the details of one stored project."""
        console = console or Console()
        console.print(f"[bold]{project.project_name}[/bold] ({project.id})")
        console.print(f"  Created:  {format_timestamp(project.created_at)}")
        console.print(f"  Status:   {project.status.value}")
        console.print(
            f"  Progress: {format_progress(len(project.file_analyses), project.total_files)}"
        )
        if project.last_processed_file:
            console.print(f"  Last processed file: {project.last_processed_file}")
        if project.error:
            console.print(f"  [red]Error: {project.error}[/red]")
        if project.requirements_document:
            console.print(
                f"  Document: {len(project.requirements_document)} characters"
            )

    @staticmethod
    def print_summary(duration_seconds: float, indent: int = 2):
        print(f"{' ' * indent}Total time: {format_duration(duration_seconds)}")

    @staticmethod
    def print_info(msg: str, indent: int = 2):
        """Print info message with indentation.

        Args:
            msg: Message to print
            indent: Number of spaces to indent
        """
        prefix = " " * indent
        print(f"{prefix}{msg}")

    @staticmethod
    def print_error(msg: str, indent: int = 0):
        """Print error message with icon."""
        prefix = " " * indent
        print(f"{prefix}❗️{msg}")

    @staticmethod
    def print_warning(msg: str, indent: int = 0):
        """Print warning message with icon."""
        prefix = " " * indent
        print(f"{prefix}⚠️{msg}")
