"""Shared fakes for the test suite."""

import asyncio
import io
import re
import zipfile

from codebase_requirements.config import RetryConfig
from codebase_requirements.core import AnalysisClient, SynthesisClient

PATH_PATTERN = re.compile(r'file at path "(.*?)"')
SYNTHESIS_MARKER = "senior software architect"

FAST_RETRY = RetryConfig(max_retries=5, base_delay=0.0, max_jitter=0.0)


async def no_sleep(_seconds):
    return None


class FakeModel:
    """In-process TextModel.

    - ``fail_paths``: path -> number of failing calls before success
      (``None`` fails forever)
    - ``gates``: path -> asyncio.Event the call waits on before answering
    - ``fail_synthesis``: number of failing synthesis calls (``None`` forever)
    """

    def __init__(self, fail_paths=None, gates=None, fail_synthesis=0):
        self.fail_paths = dict(fail_paths or {})
        self.gates = gates or {}
        self.fail_synthesis = fail_synthesis
        self.calls = []
        self.analysed = []
        self.synthesis_prompts = []
        self.synthesis_temperatures = []

    async def generate(self, prompt, *, temperature=None):
        self.calls.append(prompt)
        if SYNTHESIS_MARKER in prompt:
            return self._synthesize(prompt, temperature)

        path = PATH_PATTERN.search(prompt).group(1)
        gate = self.gates.get(path)
        if gate is not None:
            await gate.wait()

        if path in self.fail_paths:
            remaining = self.fail_paths[path]
            if remaining is None:
                raise ConnectionError(f"model unavailable for {path}")
            if remaining > 0:
                self.fail_paths[path] = remaining - 1
                raise ConnectionError(f"transient failure for {path}")

        self.analysed.append(path)
        return f"analysis of {path}"

    def _synthesize(self, prompt, temperature):
        self.synthesis_prompts.append(prompt)
        self.synthesis_temperatures.append(temperature)
        if self.fail_synthesis is None:
            raise ConnectionError("synthesis unavailable")
        if self.fail_synthesis > 0:
            self.fail_synthesis -= 1
            raise ConnectionError("synthesis hiccup")
        return "# Software Requirements Document\n\nGenerated."


def make_clients(model, retry=FAST_RETRY):
    analysis = AnalysisClient(model, retry, sleep=no_sleep)
    synthesis = SynthesisClient(model, retry, sleep=no_sleep)
    return analysis, synthesis


def make_zip(files, directories=()):
    """Build ZIP bytes from a mapping of path -> str or bytes content."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, 'w') as z:
        for directory in directories:
            z.writestr(zipfile.ZipInfo(directory), b"")
        for path, content in files.items():
            data = content.encode('utf-8') if isinstance(content, str) else content
            z.writestr(path, data)
    return buffer.getvalue()


async def settle(rounds=20):
    """Let pending tasks run for a few event loop iterations."""
    for _ in range(rounds):
        await asyncio.sleep(0)
