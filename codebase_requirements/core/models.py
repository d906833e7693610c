"""Data types shared by the extractor, the worker and the project store."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


@dataclass(frozen=True)
class FileEntry:
    """One decoded text file from the archive."""
    path: str
    content: str


@dataclass(frozen=True)
class FileAnalysis:
    """Model-written analysis of one file."""
    path: str
    analysis: str

    def to_dict(self) -> dict[str, str]:
        return {'path': self.path, 'analysis': self.analysis}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'FileAnalysis':
        return cls(path=data['path'], analysis=data['analysis'])


@dataclass
class ExtractionResult:
    """Result of reading an archive into text entries."""
    entries: list[FileEntry]
    all_paths: list[str]  # every non-directory entry, in archive order
    skipped: dict[str, str] = field(default_factory=dict)  # path -> reason

    @property
    def paths(self) -> list[str]:
        return [entry.path for entry in self.entries]


class ProjectStatus(str, Enum):
    """Lifecycle states of a project run."""
    IDLE = 'idle'
    UNZIPPING = 'unzipping'
    ANALYZING = 'analyzing'
    PAUSED = 'paused'
    GENERATING = 'generating'
    COMPLETED = 'completed'
    ERROR = 'error'

    @property
    def is_terminal(self) -> bool:
        return self in (ProjectStatus.COMPLETED, ProjectStatus.ERROR)


S = ProjectStatus

# Edges of the run state machine. ERROR is reachable from every non-terminal
# state; the error -> * edges are explicit resumes of a stored run.
ALLOWED_TRANSITIONS: dict[ProjectStatus, frozenset[ProjectStatus]] = {
    S.IDLE: frozenset({S.UNZIPPING, S.ANALYZING, S.ERROR}),
    S.UNZIPPING: frozenset({S.ANALYZING, S.ERROR}),
    S.ANALYZING: frozenset({S.PAUSED, S.GENERATING, S.ERROR}),
    S.PAUSED: frozenset({S.ANALYZING, S.ERROR}),
    S.GENERATING: frozenset({S.COMPLETED, S.ERROR}),
    S.COMPLETED: frozenset(),
    S.ERROR: frozenset({S.ANALYZING, S.GENERATING}),
}


def can_transition(current: ProjectStatus, new: ProjectStatus) -> bool:
    """Return True if ``current -> new`` is an edge of the run state machine."""
    return new in ALLOWED_TRANSITIONS[current]


@dataclass
class ProjectRecord:
    """Durable record of one archive's processing lifecycle."""
    id: str
    project_name: str
    created_at: str
    status: ProjectStatus = ProjectStatus.IDLE
    total_files: int = 0
    files_to_process: list[FileEntry] = field(default_factory=list)
    file_analyses: list[FileAnalysis] = field(default_factory=list)
    requirements_document: str = ""
    error: str | None = None
    last_processed_file: str | None = None

    @property
    def analyzed_paths(self) -> set[str]:
        return {a.path for a in self.file_analyses}

    @property
    def progress(self) -> float:
        """Fraction of files analysed, 0.0 for an empty project."""
        if self.total_files <= 0:
            return 0.0
        return len(self.file_analyses) / self.total_files

    def pending_files(self) -> list[FileEntry]:
        """Files not yet analysed, in processing order."""
        done = self.analyzed_paths
        return [f for f in self.files_to_process if f.path not in done]

    def to_dict(self) -> dict[str, Any]:
        return {
            'id': self.id,
            'project_name': self.project_name,
            'created_at': self.created_at,
            'status': self.status.value,
            'total_files': self.total_files,
            'files_to_process': [
                {'path': f.path, 'content': f.content} for f in self.files_to_process
            ],
            'file_analyses': [a.to_dict() for a in self.file_analyses],
            'requirements_document': self.requirements_document,
            'error': self.error,
            'last_processed_file': self.last_processed_file,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'ProjectRecord':
        return cls(
            id=data['id'],
            project_name=data['project_name'],
            created_at=data['created_at'],
            status=ProjectStatus(data.get('status', 'idle')),
            total_files=int(data.get('total_files', 0)),
            files_to_process=[
                FileEntry(path=f['path'], content=f['content'])
                for f in data.get('files_to_process', [])
            ],
            file_analyses=[
                FileAnalysis.from_dict(a) for a in data.get('file_analyses', [])
            ],
            requirements_document=data.get('requirements_document', ''),
            error=data.get('error'),
            last_processed_file=data.get('last_processed_file'),
        )


# --- WORKER EVENTS ---

@dataclass(frozen=True)
class ProgressEvent:
    """A file is about to be analysed."""
    path: str
    index: int  # 1-based position in the file list
    total: int


@dataclass(frozen=True)
class AnalysisCompleteEvent:
    """A file analysis was recorded."""
    analysis: FileAnalysis


@dataclass(frozen=True)
class AllAnalysesCompleteEvent:
    """Every file in the list has an analysis."""
    total: int


@dataclass(frozen=True)
class ErrorEvent:
    """The run stopped with an error."""
    message: str
    path: str | None = None


@dataclass(frozen=True)
class StatusChangedEvent:
    """The project status moved along the state graph."""
    project_id: str
    status: ProjectStatus


WorkerEvent = (
    ProgressEvent
    | AnalysisCompleteEvent
    | AllAnalysesCompleteEvent
    | ErrorEvent
    | StatusChangedEvent
)
