"""Prompt templates for per-file analysis and final synthesis.

Templates use ``string.Template`` placeholders so file contents containing
braces or dollar signs are inserted verbatim. Custom templates loaded from
disk use the same placeholders:

- analysis: ``$path``, ``$content``
- synthesis: ``$analyses``, ``$file_count``
"""

from pathlib import Path
from string import Template

from .models import FileAnalysis

ANALYSIS_TEMPLATE = """\
Analyze the following code from the file at path "$path".
Your task is to explain its primary purpose, key functionalities, and its role within the larger application.
Focus on what the code *does*. Be concise and clear.

Do not include introductory phrases like "This file contains..." or "The purpose of this file is...".
Just provide the analysis directly.

Code:
```
$content
```
"""

SYNTHESIS_TEMPLATE = """\
You are a senior software architect tasked with creating a comprehensive software requirements document.
You have been provided with an automated analysis of every file ($file_count in total) in an application's codebase.
Your job is to synthesize these individual analyses into a single, well-structured, and professional requirements document.
The final document should be detailed enough for a new development team to understand and recreate the application.

Structure the document in Markdown format with the following sections:

# Software Requirements Document

## 1. Introduction & System Overview
Provide a high-level summary of the application's purpose. Infer this from the combined analyses of all components.

## 2. Technical Architecture
Describe the overall architecture, its major layers and how they communicate. Mention key technologies or libraries identified in the file analyses.

## 3. Backend Functionality
Synthesize the analyses of server-side files. Describe the API endpoints, data models, business logic, persistence and overall structure. Be as specific as possible.

## 4. Frontend Functionality
Synthesize the analyses of client-side files. Describe the component hierarchy, state management, user interface, user flows, and how it interacts with the backend.

## 5. Key Features
Create a bulleted list of the main features and functionalities of the application.

## 6. Data Schema
Based on the data models and persistence code, infer and describe the likely data schema as a list of entities with their fields and relationships.

Omit a section only when the codebase has nothing relevant to it.

---

Here is the file-by-file analysis to use as your source material:

$analyses
"""

ANALYSIS_SEPARATOR = "\n\n---\n\n"


def format_analyses(analyses: list[FileAnalysis]) -> str:
    """Render analyses as Markdown blocks separated by horizontal rules."""
    return ANALYSIS_SEPARATOR.join(
        f"### File: `{a.path}`\n\n{a.analysis}" for a in analyses
    )


def truncate_content(content: str, max_chars: int) -> str:
    """Shorten file content for the prompt; ``max_chars <= 0`` disables it."""
    if max_chars <= 0 or len(content) <= max_chars:
        return content
    omitted = len(content) - max_chars
    return f"{content[:max_chars]}\n... [truncated {omitted} characters]"


def load_template(path: Path | None, default: str) -> str:
    """Read a template from disk, falling back to the built-in one."""
    if path is None:
        return default
    return Path(path).read_text(encoding='utf-8')


def build_analysis_prompt(
    path: str, content: str, template: str = ANALYSIS_TEMPLATE, max_chars: int = 0
) -> str:
    return Template(template).safe_substitute(
        path=path, content=truncate_content(content, max_chars)
    )


def build_synthesis_prompt(
    analyses: list[FileAnalysis], template: str = SYNTHESIS_TEMPLATE
) -> str:
    return Template(template).safe_substitute(
        analyses=format_analyses(analyses), file_count=len(analyses)
    )
