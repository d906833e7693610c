#!/usr/bin/env python3
"""Requirements generator: turns a zipped codebase into a requirements document using Gemini AI.

Every text file in the archive is analysed on its own, then all analyses are
synthesized into one Markdown document. Progress is stored per project, so
an interrupted or failed run can be resumed where it stopped.

Usage:
    generate_requirements.py run path/to/code.zip
    generate_requirements.py resume <project-id>
    generate_requirements.py list
    generate_requirements.py show <project-id> [--document]
    generate_requirements.py rename <project-id> <name>
    generate_requirements.py delete <project-id> [--yes]

Press Ctrl+C once during analysis to pause after the current file.
"""

import argparse
import asyncio
import logging
import os
import signal
import sys
import time
from contextlib import contextmanager
from pathlib import Path

from dotenv import load_dotenv
from halo import Halo

from codebase_requirements.config import AppConfig, RequirementsGeneratorError
from codebase_requirements.core import (
    JsonProjectStore,
    PipelineResult,
    ProjectStatus,
    RequirementsPipeline,
    check_model_availability,
    create_text_model,
)
from codebase_requirements.interfaces.cli.presenter import CLIPresenter
from codebase_requirements.utils import EventEmitter

# Logger will be configured in main() after loading config
logger = logging.getLogger(__name__)

DEFAULT_CONFIG = "config.yaml"
DEBUG_LOG_FILENAME = "debug.log"
LOG_FORMAT = '%(asctime)s - %(levelname)s - %(funcName)s - %(message)s'


def setup_logging(config_log_level: str, run_dir: Path | None = None) -> None:
    """Configure logging with console and, for runs, debug file handlers."""
    log_level = getattr(logging, config_log_level.upper(), logging.INFO)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt='%H:%M:%S'))
    handlers: list[logging.Handler] = [console_handler]

    if run_dir is not None:
        file_handler = logging.FileHandler(run_dir / DEBUG_LOG_FILENAME, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handlers.append(file_handler)

    logging.basicConfig(level=logging.DEBUG, handlers=handlers, force=True)


def create_run_dir(config: AppConfig, name: str) -> Path:
    """Create a timestamped output directory for one run."""
    timestamp = time.strftime("%Y%m%d-%H%M")
    run_dir = config.project.output_dir / f"{name}-{timestamp}"
    run_dir.mkdir(parents=True, exist_ok=True)
    return run_dir


@contextmanager
def pause_on_interrupt(pipeline: RequirementsPipeline):
    """First Ctrl+C pauses after the file in flight; a second one aborts."""
    loop = asyncio.get_running_loop()
    original_sigint = signal.getsignal(signal.SIGINT)

    def _handler(signum, _frame):
        CLIPresenter.print_warning(" Pausing after the current file (Ctrl+C again to abort)...")
        signal.signal(signal.SIGINT, original_sigint)
        loop.call_soon_threadsafe(pipeline.pause)

    try:
        signal.signal(signal.SIGINT, _handler)
    except ValueError:
        # Signal handlers can only be installed in the main thread.
        yield
        return
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, original_sigint)


def build_pipeline(config: AppConfig, store: JsonProjectStore) -> RequirementsPipeline:
    api_key = os.getenv("GOOGLE_API_KEY")
    if not api_key:
        CLIPresenter.print_error("GOOGLE_API_KEY not found in environment variables.")
        sys.exit(1)
    model = create_text_model(api_key, config.model)

    if config.model.validate_model:
        with Halo(text=f'Verifying model access: {config.model.name}...', spinner='dots') as spinner:
            check_model_availability(config.model.name)
            spinner.succeed(f"Model '{config.model.name}' is valid.")

    emitter = EventEmitter()
    CLIPresenter().attach_to_worker(emitter)
    return RequirementsPipeline(config, store, model, emitter)


def report_result(result: PipelineResult) -> int:
    """Print where things ended up and return the process exit code."""
    project = result.project
    if result.document_path:
        CLIPresenter.print_info(f"Document saved: {result.document_path}")
    if result.report_path:
        CLIPresenter.print_info(f"Report saved: {result.report_path}")
    CLIPresenter.print_summary(result.duration_seconds)

    if project.status == ProjectStatus.PAUSED:
        CLIPresenter.print_info(f"Paused. Resume with: resume {project.id}")
        return 0
    if project.status == ProjectStatus.ERROR:
        CLIPresenter.print_info(f"Resume with: resume {project.id}")
        return 1
    return 0


async def run_archive(config: AppConfig, store: JsonProjectStore, zip_path: Path) -> int:
    if not zip_path.exists():
        CLIPresenter.print_error(f"Error: {zip_path} not found")
        return 1

    run_dir = create_run_dir(config, zip_path.stem)
    setup_logging(config.logging.level, run_dir)
    CLIPresenter.print_info(f"Output directory created: {run_dir}")

    pipeline = build_pipeline(config, store)
    with pause_on_interrupt(pipeline):
        result = await pipeline.run(zip_path, run_dir)
    return report_result(result)


async def resume_project(config: AppConfig, store: JsonProjectStore, project_id: str) -> int:
    record = store.get(project_id)
    if record is None:
        CLIPresenter.print_error(f"Project '{project_id}' not found")
        return 1

    run_dir = create_run_dir(config, Path(record.project_name).stem)
    setup_logging(config.logging.level, run_dir)
    CLIPresenter.print_info(
        f"Resuming {record.project_name} ({len(record.file_analyses)}/{record.total_files} analysed)"
    )

    pipeline = build_pipeline(config, store)
    with pause_on_interrupt(pipeline):
        result = await pipeline.resume(project_id, run_dir)
    return report_result(result)


def show_project(store: JsonProjectStore, project_id: str, document: bool) -> int:
    record = store.get(project_id)
    if record is None:
        CLIPresenter.print_error(f"Project '{project_id}' not found")
        return 1
    if document:
        if not record.requirements_document:
            CLIPresenter.print_warning("No document generated yet.")
            return 1
        print(record.requirements_document)
        return 0
    CLIPresenter.render_project(record)
    return 0


def rename_project(store: JsonProjectStore, project_id: str, name: str) -> int:
    record = store.get(project_id)
    if record is None:
        CLIPresenter.print_error(f"Project '{project_id}' not found")
        return 1
    name = name.strip()
    if not name:
        CLIPresenter.print_error("Project name cannot be empty")
        return 1
    store.update(project_id, project_name=name)
    CLIPresenter.print_info(f"Renamed '{record.project_name}' to '{name}'", indent=0)
    return 0


def delete_project(store: JsonProjectStore, project_id: str, assume_yes: bool) -> int:
    record = store.get(project_id)
    if record is None:
        CLIPresenter.print_error(f"Project '{project_id}' not found")
        return 1
    if not assume_yes:
        confirm = input(f"Delete project '{record.project_name}'? (y/N): ").strip().lower()
        if confirm != 'y':
            print("Operation cancelled by user.")
            return 0
    store.delete(project_id)
    CLIPresenter.print_info(f"Deleted {project_id}", indent=0)
    return 0


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Generate a software requirements document from a zipped codebase."
    )
    parser.add_argument("--config", default=DEFAULT_CONFIG, help="Path to config.yaml")
    sub = parser.add_subparsers(dest="command", required=True)

    run_p = sub.add_parser("run", help="Analyse a ZIP archive")
    run_p.add_argument("zip_path", type=Path)

    resume_p = sub.add_parser("resume", help="Continue a paused or failed project")
    resume_p.add_argument("project_id")

    sub.add_parser("list", help="List stored projects, newest first")

    show_p = sub.add_parser("show", help="Show one project")
    show_p.add_argument("project_id")
    show_p.add_argument("--document", action="store_true", help="Print the generated document")

    rename_p = sub.add_parser("rename", help="Rename a stored project")
    rename_p.add_argument("project_id")
    rename_p.add_argument("name")

    delete_p = sub.add_parser("delete", help="Delete a stored project")
    delete_p.add_argument("project_id")
    delete_p.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")

    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the requirements generator."""
    args = parse_args(argv)
    try:
        load_dotenv()
        config = AppConfig.load(args.config)
        store = JsonProjectStore(config.project.store_dir)

        if args.command == "run":
            code = asyncio.run(run_archive(config, store, args.zip_path))
        elif args.command == "resume":
            code = asyncio.run(resume_project(config, store, args.project_id))
        else:
            setup_logging(config.logging.level)
            if args.command == "list":
                CLIPresenter.render_projects(store.list())
                code = 0
            elif args.command == "show":
                code = show_project(store, args.project_id, args.document)
            elif args.command == "rename":
                code = rename_project(store, args.project_id, args.name)
            else:
                code = delete_project(store, args.project_id, args.yes)

    except RequirementsGeneratorError as e:
        CLIPresenter.print_error(f"Error: {e}")
        sys.exit(1)
    except Exception as e:
        CLIPresenter.print_error(f"Unexpected Error: {e}")
        logger.debug("Unexpected error occurred", exc_info=True)
        sys.exit(1)

    sys.exit(code)


if __name__ == "__main__":
    main()
