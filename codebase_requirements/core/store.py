"""Durable project records: store contract and implementations."""

import copy
import json
import logging
import os
import tempfile
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol

from .errors import ProjectNotFoundError
from .models import FileAnalysis, FileEntry, ProjectRecord, ProjectStatus

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset({
    'project_name',
    'status',
    'total_files',
    'files_to_process',
    'requirements_document',
    'error',
    'last_processed_file',
})


class ProjectStore(Protocol):
    """Persistence contract the worker relies on."""

    def create(self, project_name: str) -> str: ...

    def update(self, project_id: str, **fields: Any) -> None: ...

    def append_analysis(self, project_id: str, analysis: FileAnalysis) -> None: ...

    def list(self) -> list[ProjectRecord]: ...

    def get(self, project_id: str) -> ProjectRecord | None: ...

    def delete(self, project_id: str) -> None: ...


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _coerce_update(fields: dict[str, Any]) -> dict[str, Any]:
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Unknown project fields: {', '.join(sorted(unknown))}")

    values = dict(fields)
    if 'status' in values:
        values['status'] = ProjectStatus(values['status'])
    if 'files_to_process' in values:
        values['files_to_process'] = [
            f if isinstance(f, FileEntry) else FileEntry(**f)
            for f in values['files_to_process']
        ]
    return values


class BaseProjectStore:
    """Shared store semantics over four storage primitives."""

    def _read(self, project_id: str) -> ProjectRecord | None:
        raise NotImplementedError

    def _write(self, record: ProjectRecord) -> None:
        raise NotImplementedError

    def _remove(self, project_id: str) -> None:
        raise NotImplementedError

    def _all(self) -> list[ProjectRecord]:
        raise NotImplementedError

    def _require(self, project_id: str) -> ProjectRecord:
        record = self._read(project_id)
        if record is None:
            raise ProjectNotFoundError(project_id)
        return record

    def create(self, project_name: str) -> str:
        record = ProjectRecord(
            id=uuid.uuid4().hex,
            project_name=project_name,
            created_at=utc_now_iso(),
        )
        self._write(record)
        logger.info("Created project %s (%s)", record.id, project_name)
        return record.id

    def update(self, project_id: str, **fields: Any) -> None:
        values = _coerce_update(fields)
        record = self._require(project_id)
        self._write(replace(record, **values))

    def append_analysis(self, project_id: str, analysis: FileAnalysis) -> None:
        record = self._require(project_id)
        record.file_analyses.append(analysis)
        record.last_processed_file = analysis.path
        self._write(record)

    def list(self) -> list[ProjectRecord]:
        return sorted(self._all(), key=lambda r: r.created_at, reverse=True)

    def get(self, project_id: str) -> ProjectRecord | None:
        return self._read(project_id)

    def delete(self, project_id: str) -> None:
        self._remove(project_id)


class InMemoryProjectStore(BaseProjectStore):
    """Process-local store for tests and embedding."""

    def __init__(self) -> None:
        self._records: dict[str, ProjectRecord] = {}

    def _read(self, project_id: str) -> ProjectRecord | None:
        record = self._records.get(project_id)
        return copy.deepcopy(record) if record is not None else None

    def _write(self, record: ProjectRecord) -> None:
        self._records[record.id] = copy.deepcopy(record)

    def _remove(self, project_id: str) -> None:
        self._records.pop(project_id, None)

    def _all(self) -> list[ProjectRecord]:
        return [copy.deepcopy(r) for r in self._records.values()]


class JsonProjectStore(BaseProjectStore):
    """One JSON document per project inside a directory.

    File contents live in a ``<id>.files.json`` sidecar that is written only
    when the file list changes, so appending an analysis rewrites the small
    record document and never the archive contents.

    Writes go to a temporary file in the same directory and are moved into
    place with ``os.replace`` so a crash never leaves a half-written file.
    """

    FILES_SUFFIX = ".files.json"

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, project_id: str) -> Path:
        # ids are generated hex strings; reject anything that could escape root
        if not project_id or not project_id.isalnum():
            raise ProjectNotFoundError(project_id)
        return self.root / f"{project_id}.json"

    def _files_path(self, project_id: str) -> Path:
        return self._path(project_id).with_name(f"{project_id}{self.FILES_SUFFIX}")

    def _dump(self, path: Path, data: Any) -> None:
        fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=f".{path.stem}.", suffix=".tmp")
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _load_document(self, project_id: str) -> dict[str, Any] | None:
        try:
            path = self._path(project_id)
        except ProjectNotFoundError:
            return None
        if not path.exists():
            return None
        with path.open('r', encoding='utf-8') as f:
            return json.load(f)

    def _require_document(self, project_id: str) -> dict[str, Any]:
        document = self._load_document(project_id)
        if document is None:
            raise ProjectNotFoundError(project_id)
        return document

    def _load_files(self, project_id: str) -> list[dict[str, str]]:
        path = self._files_path(project_id)
        if not path.exists():
            return []
        with path.open('r', encoding='utf-8') as f:
            return json.load(f)

    def _write_files(self, project_id: str, files: list[FileEntry]) -> None:
        self._dump(
            self._files_path(project_id),
            [{'path': f.path, 'content': f.content} for f in files],
        )

    def _read(self, project_id: str) -> ProjectRecord | None:
        document = self._load_document(project_id)
        if document is None:
            return None
        document['files_to_process'] = self._load_files(project_id)
        return ProjectRecord.from_dict(document)

    def _write(self, record: ProjectRecord) -> None:
        document = record.to_dict()
        document.pop('files_to_process')
        self._write_files(record.id, record.files_to_process)
        self._dump(self._path(record.id), document)

    def update(self, project_id: str, **fields: Any) -> None:
        values = _coerce_update(fields)
        document = self._require_document(project_id)
        files = values.pop('files_to_process', None)
        if files is not None:
            self._write_files(project_id, files)
        if 'status' in values:
            values['status'] = values['status'].value
        document.update(values)
        self._dump(self._path(project_id), document)

    def append_analysis(self, project_id: str, analysis: FileAnalysis) -> None:
        document = self._require_document(project_id)
        document.setdefault('file_analyses', []).append(analysis.to_dict())
        document['last_processed_file'] = analysis.path
        self._dump(self._path(project_id), document)

    def _remove(self, project_id: str) -> None:
        try:
            self._path(project_id).unlink(missing_ok=True)
            self._files_path(project_id).unlink(missing_ok=True)
        except ProjectNotFoundError:
            return

    def _all(self) -> list[ProjectRecord]:
        records = []
        for path in self.root.glob("*.json"):
            if path.name.endswith(self.FILES_SUFFIX):
                continue
            try:
                record = self._read(path.stem)
            except (OSError, ValueError, KeyError) as e:
                logger.warning("Skipping unreadable project file %s: %s", path.name, e)
                continue
            if record is not None:
                records.append(record)
        return records
