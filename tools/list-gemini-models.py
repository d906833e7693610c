#!/usr/bin/env python3
"""List Gemini models that can serve the analysis and synthesis requests.

Only models supporting ``generateContent`` are shown; the configured model
from config.yaml (if any) is highlighted.
"""

import os
import sys
from pathlib import Path

import google.generativeai as genai
from dotenv import load_dotenv
from rich import box
from rich.console import Console
from rich.table import Table

sys.path.append(str(Path(__file__).resolve().parent.parent))

from codebase_requirements.config import AppConfig, ConfigError  # noqa: E402


def humanize_tokens(num: int | None) -> str:
    """Convert a token count to k/M notation."""
    if not num:
        return "0"
    if num >= 1_000_000:
        return f"{num / 1_000_000:.1f}M".replace(".0M", "M")
    if num >= 1_000:
        return f"{num / 1_000:.0f}k"
    return str(num)


def configured_model_name() -> str | None:
    try:
        return AppConfig.load("config.yaml").model.name
    except ConfigError:
        return None


def main() -> None:
    console = Console()
    load_dotenv()
    api_key = os.getenv("GOOGLE_API_KEY")
    if not api_key:
        console.print("Error: GOOGLE_API_KEY not found.")
        sys.exit(1)
    genai.configure(api_key=api_key)

    current = configured_model_name()
    try:
        models = sorted(
            (m for m in genai.list_models() if 'generateContent' in m.supported_generation_methods),
            key=lambda m: m.name,
        )
    except Exception as e:
        console.print(f"Error: {e}")
        sys.exit(1)

    table = Table(box=box.SIMPLE, header_style=None)
    table.add_column("Display Name", no_wrap=True)
    table.add_column("ID", no_wrap=True)
    table.add_column("Ctx Win", no_wrap=True, justify="right")
    table.add_column("Description")

    for m in models:
        model_id = m.name
        if current and (model_id == current or model_id.endswith(f"/{current}")):
            model_id = f"[bold green]{model_id} (configured)[/bold green]"
        table.add_row(
            m.display_name,
            model_id,
            humanize_tokens(m.input_token_limit),
            (m.description or "").strip(),
        )

    console.print(table)


if __name__ == "__main__":
    main()
