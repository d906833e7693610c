"""Model clients: per-file analysis and final document synthesis.

Both clients talk to the model through the ``TextModel`` protocol and wrap
every request in the retry envelope. ``GeminiTextModel`` is the production
adapter over ``google.generativeai``.
"""

import logging
from typing import Awaitable, Callable, Optional, Protocol

from google.api_core import exceptions as google_exceptions
import google.generativeai as genai

from ..config import ModelConfig, RetryConfig
from .errors import (
    AnalysisError,
    CredentialError,
    PreconditionError,
    RetryError,
    SynthesisError,
)
from .models import FileAnalysis
from .prompts import (
    ANALYSIS_TEMPLATE,
    SYNTHESIS_TEMPLATE,
    build_analysis_prompt,
    build_synthesis_prompt,
)
from .retry import with_retry

logger = logging.getLogger(__name__)


class TextModel(Protocol):
    """Single request/response text generation call."""

    async def generate(self, prompt: str, *, temperature: float | None = None) -> str: ...


class GeminiTextModel:
    """TextModel backed by a Gemini ``GenerativeModel``."""

    def __init__(self, model_config: ModelConfig):
        self.config = model_config
        self._model = genai.GenerativeModel(model_config.name)

    async def generate(self, prompt: str, *, temperature: float | None = None) -> str:
        generation_config = None
        if temperature is not None:
            generation_config = genai.GenerationConfig(temperature=temperature)

        try:
            response = await self._model.generate_content_async(
                prompt,
                generation_config=generation_config,
                request_options={"timeout": self.config.timeout},
            )
        except google_exceptions.DeadlineExceeded as e:
            logger.warning("Generation timed out after %ss", self.config.timeout)
            raise TimeoutError(f"Generation timed out after {self.config.timeout}s") from e
        # .text raises ValueError when the response carries no text part
        return response.text


def create_text_model(api_key: str | None, model_config: ModelConfig) -> Optional[GeminiTextModel]:
    """Configure the Gemini SDK and build a model, or None without a key."""
    if not api_key:
        logger.error("API key is missing; model client not initialized.")
        return None
    genai.configure(api_key=api_key)
    return GeminiTextModel(model_config)


def check_model_availability(model_name: str) -> None:
    """Check that the Gemini model is available via the API.

    Raises:
        ConnectionError: If the model list cannot be fetched
        ValueError: If the model is not offered
    """
    try:
        found = any(
            m.name == model_name or m.name.endswith(f"/{model_name}")
            for m in genai.list_models()
        )
    except Exception as e:
        raise ConnectionError(f"API Connection Error: {e}") from e
    if not found:
        raise ValueError(f"Model '{model_name}' not found.")


class AnalysisClient:
    """Asks the model for a standalone analysis of one file."""

    def __init__(
        self,
        model: TextModel | None,
        retry: RetryConfig | None = None,
        *,
        template: str = ANALYSIS_TEMPLATE,
        max_file_chars: int = 0,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ):
        self.model = model
        self.retry = retry or RetryConfig()
        self.template = template
        self.max_file_chars = max_file_chars
        self._sleep = sleep

    async def analyze_file(self, path: str, content: str) -> str:
        """Return the model's analysis text for one file.

        Raises:
            CredentialError: If no model is configured (no retry)
            AnalysisError: If every attempt failed
        """
        if self.model is None:
            raise CredentialError("AI not initialized: API key is missing.")

        prompt = build_analysis_prompt(path, content, self.template, self.max_file_chars)
        model = self.model

        kwargs = {'sleep': self._sleep} if self._sleep else {}
        try:
            return await with_retry(
                lambda: model.generate(prompt),
                f"analyzeFile for {path}",
                self.retry,
                **kwargs,
            )
        except RetryError as e:
            raise AnalysisError(path, f"Failed to analyze file: {path} ({e.last_error})") from e


class SynthesisClient:
    """Combines all file analyses into one requirements document."""

    def __init__(
        self,
        model: TextModel | None,
        retry: RetryConfig | None = None,
        *,
        template: str = SYNTHESIS_TEMPLATE,
        temperature: float = 0.2,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ):
        self.model = model
        self.retry = retry or RetryConfig()
        self.template = template
        self.temperature = temperature
        self._sleep = sleep

    async def synthesize(self, analyses: list[FileAnalysis]) -> str:
        """Return the generated document for a non-empty list of analyses.

        Raises:
            PreconditionError: If ``analyses`` is empty; no request is made
            CredentialError: If no model is configured (no retry)
            SynthesisError: If every attempt failed
        """
        if not analyses:
            raise PreconditionError("Cannot synthesize a document from zero analyses.")
        if self.model is None:
            raise CredentialError("AI not initialized: API key is missing.")

        prompt = build_synthesis_prompt(list(analyses), self.template)
        model = self.model
        temperature = self.temperature

        kwargs = {'sleep': self._sleep} if self._sleep else {}
        try:
            return await with_retry(
                lambda: model.generate(prompt, temperature=temperature),
                "generateRequirementsDocument",
                self.retry,
                **kwargs,
            )
        except RetryError as e:
            raise SynthesisError(
                f"Failed to generate the final document: {e.last_error}"
            ) from e
