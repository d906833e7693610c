import io
import os
import sys
import tempfile
import unittest
from unittest import mock
from pathlib import Path

from rich.console import Console

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from codebase_requirements.config import AppConfig, ProjectConfig, RetryConfig
from codebase_requirements.core import (
    AnalysisCompleteEvent,
    FileAnalysis,
    InMemoryProjectStore,
    JsonProjectStore,
    ProgressEvent,
    ProjectStatus,
    RequirementsPipeline,
    StatusChangedEvent,
)
from codebase_requirements.core.pipeline import REPORT_FILENAME
from codebase_requirements.interfaces.cli.presenter import CLIPresenter
from codebase_requirements.utils import EventEmitter
from generate_requirements import parse_args, rename_project
from helpers import FakeModel, make_zip


class TestRequirementsPipeline(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.root = Path(self.tmp.name)
        self.run_dir = self.root / "run"
        self.run_dir.mkdir()
        self.config = AppConfig(
            project=ProjectConfig(output_dir=self.root, store_dir=self.root / "store"),
            retry=RetryConfig(max_retries=2, base_delay=0.0, max_jitter=0.0),
        )
        self.zip_path = self.root / "shop.zip"
        self.zip_path.write_bytes(make_zip({
            "src/app.py": "print('hi')",
            "src/db.py": "DB = {}",
            "__MACOSX/src/._app.py": "fork",
        }))

    def tearDown(self):
        self.tmp.cleanup()

    async def test_run_writes_document_and_report(self):
        store = JsonProjectStore(self.config.project.store_dir)
        pipeline = RequirementsPipeline(self.config, store, FakeModel())

        result = await pipeline.run(self.zip_path, self.run_dir)

        self.assertTrue(result.succeeded)
        self.assertEqual(result.project.project_name, "shop.zip")
        self.assertEqual(result.document_path, self.run_dir / "requirements.md")
        self.assertIn("Software Requirements Document", result.document_path.read_text())
        self.assertEqual(set(result.file_durations), {"src/app.py", "src/db.py"})

        report = (self.run_dir / REPORT_FILENAME).read_text()
        self.assertIn("Status: completed", report)
        self.assertIn("Analysed: 2/2 (100%)", report)
        self.assertIn("--- ARCHIVE CONTENTS ---", report)
        self.assertIn("# skipped (filtered)", report)
        self.assertIn("--- ANALYSIS TIMING ---", report)

        stored = store.get(result.project.id)
        self.assertEqual(stored.status, ProjectStatus.COMPLETED)

    async def test_failed_run_resumes_with_new_pipeline(self):
        store = InMemoryProjectStore()
        failing = RequirementsPipeline(self.config, store, FakeModel(fail_synthesis=None))

        first = await failing.run(self.zip_path, self.run_dir)

        self.assertFalse(first.succeeded)
        self.assertIsNone(first.document_path)
        self.assertIn("Error: Failed to generate", (self.run_dir / REPORT_FILENAME).read_text())

        model = FakeModel()
        second = await RequirementsPipeline(self.config, store, model).resume(
            first.project.id, self.run_dir
        )

        self.assertTrue(second.succeeded)
        self.assertEqual(model.analysed, [])
        self.assertTrue((self.run_dir / "requirements.md").exists())
        self.assertNotIn("--- ARCHIVE CONTENTS ---", (self.run_dir / REPORT_FILENAME).read_text())

    async def test_reused_pipeline_times_each_run_separately(self):
        other_zip = self.root / "other.zip"
        other_zip.write_bytes(make_zip({"lib/util.py": "x = 1"}))
        pipeline = RequirementsPipeline(self.config, InMemoryProjectStore(), FakeModel())

        first = await pipeline.run(self.zip_path, self.run_dir)
        second = await pipeline.run(other_zip, self.run_dir)

        self.assertEqual(set(first.file_durations), {"src/app.py", "src/db.py"})
        self.assertEqual(set(second.file_durations), {"lib/util.py"})
        self.assertEqual(len(pipeline.emitter._handlers[ProgressEvent]), 1)

    async def test_custom_templates_and_temperature(self):
        analysis_prompt = self.root / "analysis.txt"
        analysis_prompt.write_text('Describe the file at path "$path":\n$content')
        self.config.project.analysis_prompt_file = analysis_prompt
        self.config.model.synthesis_temperature = 0.7
        model = FakeModel()

        result = await RequirementsPipeline(self.config, InMemoryProjectStore(), model).run(
            self.zip_path, self.run_dir
        )

        self.assertTrue(result.succeeded)
        self.assertTrue(model.calls[0].startswith("Describe the file"))
        self.assertEqual(model.synthesis_temperatures, [0.7])


class TestCLI(unittest.TestCase):
    def test_parse_args(self):
        args = parse_args(["--config", "other.yaml", "run", "code.zip"])
        self.assertEqual(args.command, "run")
        self.assertEqual(args.config, "other.yaml")
        self.assertEqual(args.zip_path, Path("code.zip"))

        args = parse_args(["delete", "abc", "--yes"])
        self.assertEqual((args.command, args.project_id, args.yes), ("delete", "abc", True))

        with self.assertRaises(SystemExit), mock.patch('sys.stderr', io.StringIO()):
            parse_args([])

    def test_rename_project(self):
        store = InMemoryProjectStore()
        project_id = store.create("shop.zip")

        with mock.patch('sys.stdout', io.StringIO()):
            self.assertEqual(rename_project(store, project_id, "  Shop backend "), 0)
            self.assertEqual(rename_project(store, project_id, "   "), 1)
            self.assertEqual(rename_project(store, "deadbeef", "x"), 1)

        self.assertEqual(store.get(project_id).project_name, "Shop backend")
        args = parse_args(["rename", project_id, "New name"])
        self.assertEqual((args.command, args.name), ("rename", "New name"))

    def test_presenter_counts_follow_the_project(self):
        emitter = EventEmitter()
        presenter = CLIPresenter()
        presenter.attach_to_worker(emitter)

        emitter.emit(StatusChangedEvent(project_id="p1", status=ProjectStatus.PAUSED))
        for index, path in enumerate(["a.py", "b.py"], start=1):
            emitter.emit(ProgressEvent(path=path, index=index, total=4))
            emitter.emit(AnalysisCompleteEvent(analysis=FileAnalysis(path, "x")))
        self.assertEqual((presenter.analysed, presenter.total), (2, 4))

        emitter.emit(StatusChangedEvent(project_id="p2", status=ProjectStatus.PAUSED))
        self.assertEqual((presenter.analysed, presenter.total), (0, 0))

        # a resumed project continues from the worker's index
        emitter.emit(StatusChangedEvent(project_id="p1", status=ProjectStatus.PAUSED))
        emitter.emit(ProgressEvent(path="c.py", index=3, total=4))
        emitter.emit(AnalysisCompleteEvent(analysis=FileAnalysis("c.py", "x")))
        self.assertEqual((presenter.analysed, presenter.total), (3, 4))

    def test_render_projects(self):
        store = InMemoryProjectStore()
        project_id = store.create("shop.zip")
        store.update(project_id, status="paused", total_files=4)

        out = io.StringIO()
        CLIPresenter.render_projects(store.list(), console=Console(file=out, width=200))

        text = out.getvalue()
        self.assertIn(project_id, text)
        self.assertIn("shop.zip", text)
        self.assertIn("paused", text)
        self.assertIn("0/4 (0%)", text)

    def test_render_project(self):
        store = InMemoryProjectStore()
        project_id = store.create("shop.zip")
        store.update(project_id, status="error", error="boom", total_files=2)

        out = io.StringIO()
        CLIPresenter.render_project(store.get(project_id), console=Console(file=out, width=200))

        self.assertIn("Error: boom", out.getvalue())


if __name__ == '__main__':
    unittest.main()
