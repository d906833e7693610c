"""Core file-processing pipeline."""

from .errors import (
    AnalysisError,
    CredentialError,
    ExtractionError,
    InvalidTransitionError,
    PreconditionError,
    ProjectNotFoundError,
    RetryError,
    SynthesisError,
)
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
)
from .extractor import extract_archive
from .retry import with_retry
from .clients import (
    AnalysisClient,
    GeminiTextModel,
    SynthesisClient,
    TextModel,
    check_model_availability,
    create_text_model,
)
from .store import InMemoryProjectStore, JsonProjectStore, ProjectStore
from .worker import ProcessingWorker, WorkerSession
from .pipeline import PipelineResult, RequirementsPipeline

__all__ = [
    'AnalysisError',
    'CredentialError',
    'ExtractionError',
    'InvalidTransitionError',
    'PreconditionError',
    'ProjectNotFoundError',
    'RetryError',
    'SynthesisError',
    'AllAnalysesCompleteEvent',
    'AnalysisCompleteEvent',
    'ErrorEvent',
    'ExtractionResult',
    'FileAnalysis',
    'FileEntry',
    'ProgressEvent',
    'ProjectRecord',
    'ProjectStatus',
    'StatusChangedEvent',
    'extract_archive',
    'with_retry',
    'AnalysisClient',
    'GeminiTextModel',
    'SynthesisClient',
    'TextModel',
    'check_model_availability',
    'create_text_model',
    'InMemoryProjectStore',
    'JsonProjectStore',
    'ProjectStore',
    'ProcessingWorker',
    'WorkerSession',
    'PipelineResult',
    'RequirementsPipeline',
]
