from __future__ import annotations
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Mapping, Optional, Tuple

from .options import GenerationRequest, ProviderName
from .prompt_builder import build_corrective_prompt, build_prompt
from .providers import ProviderAdapter, ProviderError, ProviderErrorCode, ProviderResult, default_adapters
from .sanitizer import sanitize_response
from .settings import load_settings
from .text_sampler import sample_text
from .validator import ValidationResult, validate_content

logger = logging.getLogger(__name__)


class PipelineState(str, Enum):
    IDLE = "idle"
    PROMPTING = "prompting"
    GENERATING = "generating"
    SANITIZING = "sanitizing"
    VALIDATING = "validating"
    RETRYING = "retrying"
    ACCEPTED = "accepted"
    ACCEPTED_WITH_WARNINGS = "accepted_with_warnings"
    DONE = "done"


class OutcomeStatus(str, Enum):
    ACCEPTED = "accepted"
    ACCEPTED_WITH_WARNINGS = "accepted_with_warnings"


class GenerationError(Exception):
    """No content could be produced by any path."""

    def __init__(self, code: ProviderErrorCode, message: str, errors: Tuple[ProviderError, ...] = ()) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.errors = errors

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


@dataclass(frozen=True)
class GenerationOutcome:
    content: str
    status: OutcomeStatus
    provider: str
    model: Optional[str] = None
    attempts: int = 1
    # Validation reasons still unresolved after the retry
    warnings: Tuple[str, ...] = ()
    trace: Tuple[PipelineState, ...] = ()


@dataclass
class _Run:
    trace: List[PipelineState] = field(default_factory=lambda: [PipelineState.IDLE])
    errors: List[ProviderError] = field(default_factory=list)

    def enter(self, state: PipelineState) -> None:
        logger.debug("pipeline %s -> %s", self.trace[-1].value, state.value)
        self.trace.append(state)


class MaterialGenerator:
    """Runs one request through prompt, provider, sanitizer and validator.

    Holds adapters only; nothing is carried from one call to the next, so a
    single instance can serve concurrent requests.
    """

    def __init__(
        self,
        adapters: Optional[Mapping[ProviderName, ProviderAdapter]] = None,
        *,
        source_text_budget: Optional[int] = None,
    ) -> None:
        self._adapters = dict(adapters) if adapters is not None else default_adapters()
        self._budget = source_text_budget

    async def generate(self, request: GenerationRequest) -> GenerationOutcome:
        try:
            return await self._run(request)
        except GenerationError:
            raise
        except Exception as exc:
            logger.exception("generation pipeline crashed")
            raise GenerationError(ProviderErrorCode.UNKNOWN, f"教材の生成中に予期しないエラーが発生しました: {exc}") from exc

    async def _run(self, request: GenerationRequest) -> GenerationOutcome:
        run = _Run()
        options = request.options
        budget = self._budget if self._budget is not None else load_settings().source_text_budget

        run.enter(PipelineState.PROMPTING)
        sampled = sample_text(request.source_text, budget)
        prompt = build_prompt(sampled, request.material_type, options)

        run.enter(PipelineState.GENERATING)
        first = await self._dispatch(run, prompt, options.provider)
        if first.error is not None:
            raise GenerationError(first.error.code, first.error.message, tuple(run.errors))

        content, verdict = self._sanitize_and_validate(run, request, first.text)
        if verdict.valid:
            run.enter(PipelineState.ACCEPTED)
            run.enter(PipelineState.DONE)
            return GenerationOutcome(
                content=content,
                status=OutcomeStatus.ACCEPTED,
                provider=first.provider,
                model=first.model,
                attempts=1,
                trace=tuple(run.trace),
            )

        logger.info("validation failed, retrying once: %s", "; ".join(verdict.reasons))
        run.enter(PipelineState.RETRYING)
        run.enter(PipelineState.GENERATING)
        second = await self._dispatch(run, build_corrective_prompt(prompt, verdict.reasons), options.provider)
        if not second.ok:
            # Keep the first pass rather than failing after content already exists
            logger.warning("retry generation failed (%s); keeping first-pass content", second.error)
            run.enter(PipelineState.ACCEPTED_WITH_WARNINGS)
            run.enter(PipelineState.DONE)
            return GenerationOutcome(
                content=content,
                status=OutcomeStatus.ACCEPTED_WITH_WARNINGS,
                provider=first.provider,
                model=first.model,
                attempts=2,
                warnings=tuple(verdict.reasons),
                trace=tuple(run.trace),
            )

        retry_content, retry_verdict = self._sanitize_and_validate(run, request, second.text)
        if not retry_verdict.valid:
            logger.warning("retry still invalid: %s", "; ".join(retry_verdict.reasons))
        run.enter(PipelineState.ACCEPTED_WITH_WARNINGS)
        run.enter(PipelineState.DONE)
        return GenerationOutcome(
            content=retry_content,
            status=OutcomeStatus.ACCEPTED_WITH_WARNINGS,
            provider=second.provider,
            model=second.model,
            attempts=2,
            warnings=tuple(retry_verdict.reasons),
            trace=tuple(run.trace),
        )

    def _sanitize_and_validate(self, run: _Run, request: GenerationRequest, raw: str) -> Tuple[str, ValidationResult]:
        run.enter(PipelineState.SANITIZING)
        content = sanitize_response(raw)
        run.enter(PipelineState.VALIDATING)
        return content, validate_content(request.material_type, content, request.options)

    async def _dispatch(self, run: _Run, prompt: str, selected: ProviderName) -> ProviderResult:
        """Call the selected provider; only missing credentials switch providers."""
        result = await self._call(selected, prompt)
        if result.error is not None:
            run.errors.append(result.error)
        if result.error is None or result.error.code is not ProviderErrorCode.MISSING_CREDENTIALS:
            return result
        alternate = selected.alternate
        if alternate not in self._adapters:
            return result
        logger.info("%s has no credentials, falling back to %s", selected.value, alternate.value)
        result = await self._call(alternate, prompt)
        if result.error is not None:
            run.errors.append(result.error)
        return result

    async def _call(self, name: ProviderName, prompt: str) -> ProviderResult:
        adapter = self._adapters.get(name)
        if adapter is None:
            return ProviderResult.failure(name.value, ProviderErrorCode.MISSING_CREDENTIALS, f"provider {name.value} is not available")
        try:
            return await adapter.generate(prompt)
        except Exception as exc:
            logger.exception("provider %s raised", name.value)
            return ProviderResult.failure(name.value, ProviderErrorCode.UNKNOWN, str(exc))


async def generate_material(
    request: GenerationRequest,
    adapters: Optional[Mapping[ProviderName, ProviderAdapter]] = None,
) -> GenerationOutcome:
    return await MaterialGenerator(adapters).generate(request)
