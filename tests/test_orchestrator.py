from __future__ import annotations

import pytest

from fakes import FakeAdapter, failure
from kyozai.options import GenerationOptions, GenerationRequest, MaterialType, ProviderName
from kyozai.orchestrator import GenerationError, MaterialGenerator, OutcomeStatus, PipelineState, generate_material
from kyozai.providers import ProviderErrorCode
from kyozai.sanitizer import count_latin_words, sanitize_response
from kyozai.validator import count_section_headings, validate_content

SOURCE = ("光合成は植物が光エネルギーを用いて二酸化炭素と水から糖と酸素をつくるはたらきである。" * 6)[:200]

VALID_SUMMARY = (
    "# 光合成 - まとめシート\n\n"
    "## 1. 光合成のしくみ\n- 光エネルギーを利用する\n\n"
    "## 2. 材料と生成物\n- 二酸化炭素と水から糖と酸素\n\n"
    "## 3. 行われる場所\n- 葉緑体"
)
INVALID_SUMMARY = "# 光合成 - まとめシート\n\n光合成は大切なはたらきである。"


def _request(material_type=MaterialType.SUMMARY, **options) -> GenerationRequest:
    return GenerationRequest(
        source_text=SOURCE,
        material_type=material_type,
        options=GenerationOptions.from_raw(options),
    )


def _generator(gemini: FakeAdapter, deepseek: FakeAdapter) -> MaterialGenerator:
    return MaterialGenerator({ProviderName.GEMINI: gemini, ProviderName.DEEPSEEK: deepseek}, source_text_budget=5500)


@pytest.mark.anyio
async def test_first_pass_valid_is_accepted():
    gemini = FakeAdapter("gemini", [VALID_SUMMARY])
    outcome = await _generator(gemini, FakeAdapter("deepseek")).generate(_request(sectionCount=3))

    assert outcome.status is OutcomeStatus.ACCEPTED
    assert outcome.content == VALID_SUMMARY
    assert outcome.attempts == 1
    assert outcome.warnings == ()
    assert outcome.trace == (
        PipelineState.IDLE,
        PipelineState.PROMPTING,
        PipelineState.GENERATING,
        PipelineState.SANITIZING,
        PipelineState.VALIDATING,
        PipelineState.ACCEPTED,
        PipelineState.DONE,
    )
    assert SOURCE in gemini.prompts[0]


@pytest.mark.anyio
async def test_invalid_first_pass_retries_once_with_reasons():
    request = _request(sectionCount=3)
    gemini = FakeAdapter("gemini", [INVALID_SUMMARY, VALID_SUMMARY])
    outcome = await _generator(gemini, FakeAdapter("deepseek")).generate(request)

    expected_reasons = validate_content(request.material_type, sanitize_response(INVALID_SUMMARY), request.options).reasons
    assert expected_reasons
    assert len(gemini.prompts) == 2
    assert gemini.prompts[1].startswith(gemini.prompts[0])
    for reason in expected_reasons:
        assert reason in gemini.prompts[1]
    assert outcome.content == sanitize_response(VALID_SUMMARY)
    assert outcome.status is OutcomeStatus.ACCEPTED_WITH_WARNINGS
    assert outcome.warnings == ()
    assert PipelineState.RETRYING in outcome.trace


@pytest.mark.anyio
async def test_retry_content_returned_even_if_still_invalid():
    gemini = FakeAdapter("gemini", [INVALID_SUMMARY, "まだ見出しもない"])
    outcome = await _generator(gemini, FakeAdapter("deepseek")).generate(_request(sectionCount=3))

    assert len(gemini.prompts) == 2
    assert outcome.content == sanitize_response("まだ見出しもない")
    assert outcome.status is OutcomeStatus.ACCEPTED_WITH_WARNINGS
    assert outcome.warnings


@pytest.mark.anyio
async def test_failed_retry_call_keeps_first_pass_content():
    gemini = FakeAdapter("gemini", [INVALID_SUMMARY, failure("gemini", ProviderErrorCode.REQUEST_FAILED)])
    outcome = await _generator(gemini, FakeAdapter("deepseek")).generate(_request(sectionCount=3))

    assert outcome.content == sanitize_response(INVALID_SUMMARY)
    assert outcome.status is OutcomeStatus.ACCEPTED_WITH_WARNINGS
    assert outcome.warnings


@pytest.mark.anyio
async def test_missing_credentials_falls_back_to_alternate_provider():
    gemini = FakeAdapter("gemini", [failure("gemini", ProviderErrorCode.MISSING_CREDENTIALS)])
    deepseek = FakeAdapter("deepseek", [VALID_SUMMARY])
    outcome = await _generator(gemini, deepseek).generate(_request(sectionCount=3))

    assert outcome.provider == "deepseek"
    assert outcome.content == VALID_SUMMARY
    assert len(deepseek.prompts) == 1


@pytest.mark.anyio
async def test_fallback_works_in_both_directions():
    gemini = FakeAdapter("gemini", [VALID_SUMMARY])
    deepseek = FakeAdapter("deepseek", [failure("deepseek", ProviderErrorCode.MISSING_CREDENTIALS)])
    outcome = await _generator(gemini, deepseek).generate(_request(sectionCount=3, apiProvider="deepseek"))
    assert outcome.provider == "gemini"


@pytest.mark.anyio
@pytest.mark.parametrize(
    "code",
    [ProviderErrorCode.RATE_LIMITED, ProviderErrorCode.REQUEST_FAILED, ProviderErrorCode.EMPTY_RESPONSE],
)
async def test_other_provider_errors_do_not_fall_back(code):
    gemini = FakeAdapter("gemini", [failure("gemini", code, "quota exceeded")])
    deepseek = FakeAdapter("deepseek", [VALID_SUMMARY])

    with pytest.raises(GenerationError) as excinfo:
        await _generator(gemini, deepseek).generate(_request())

    assert excinfo.value.code is code
    assert deepseek.prompts == []


@pytest.mark.anyio
async def test_all_candidates_failed_surfaces_from_secondary():
    deepseek = FakeAdapter("deepseek", [failure("deepseek", ProviderErrorCode.ALL_CANDIDATES_FAILED)])
    gemini = FakeAdapter("gemini", [VALID_SUMMARY])

    with pytest.raises(GenerationError) as excinfo:
        await _generator(gemini, deepseek).generate(_request(apiProvider="deepseek"))

    assert excinfo.value.code is ProviderErrorCode.ALL_CANDIDATES_FAILED
    assert gemini.prompts == []


@pytest.mark.anyio
async def test_both_providers_without_credentials_is_a_generation_error():
    gemini = FakeAdapter("gemini", [failure("gemini", ProviderErrorCode.MISSING_CREDENTIALS)])
    deepseek = FakeAdapter("deepseek", [failure("deepseek", ProviderErrorCode.MISSING_CREDENTIALS)])

    with pytest.raises(GenerationError) as excinfo:
        await _generator(gemini, deepseek).generate(_request())
    assert excinfo.value.code is ProviderErrorCode.MISSING_CREDENTIALS
    assert [e.provider for e in excinfo.value.errors] == ["gemini", "deepseek"]


@pytest.mark.anyio
async def test_adapter_exception_becomes_typed_error():
    gemini = FakeAdapter("gemini", [RuntimeError("socket closed")])
    with pytest.raises(GenerationError) as excinfo:
        await _generator(gemini, FakeAdapter("deepseek")).generate(_request())
    assert excinfo.value.code is ProviderErrorCode.UNKNOWN


@pytest.mark.anyio
async def test_end_to_end_summary_scenario():
    assert len(SOURCE) == 200
    leaked = (
        "We are asked to produce a summary sheet in Japanese.\n"
        "The user wants three sections.\n\n"
        + VALID_SUMMARY
        + "\n\nThis summary covers the main points of the text."
    )
    gemini = FakeAdapter("gemini", [leaked])
    outcome = await _generator(gemini, FakeAdapter("deepseek")).generate(_request(sectionCount=3))

    lines = outcome.content.splitlines()
    assert lines[0].startswith("# ")
    assert count_section_headings(outcome.content) >= 2
    assert all(count_latin_words(line) < 5 for line in lines)
    assert outcome.status is OutcomeStatus.ACCEPTED


@pytest.mark.anyio
async def test_generate_material_helper_uses_given_adapters():
    deepseek = FakeAdapter("deepseek", [VALID_SUMMARY])
    adapters = {ProviderName.GEMINI: FakeAdapter("gemini"), ProviderName.DEEPSEEK: deepseek}
    outcome = await generate_material(_request(sectionCount=3, apiProvider="deepseek"), adapters)

    assert outcome.provider == "deepseek"
    assert outcome.status is OutcomeStatus.ACCEPTED
    assert len(deepseek.prompts) == 1
