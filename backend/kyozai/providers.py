from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Protocol, runtime_checkable

import httpx

from .options import ProviderName


SYSTEM_INSTRUCTION = (
	"あなたは教育専門家です。教材作成のエキスパートとして、高品質な教育コンテンツを作成します。"
	"正確で学習効果の高い教材を、日本語のみで提供します。"
)


class ProviderErrorCode(str, Enum):
	MISSING_CREDENTIALS = "MISSING_CREDENTIALS"
	REQUEST_FAILED = "REQUEST_FAILED"
	RATE_LIMITED = "RATE_LIMITED"
	EMPTY_RESPONSE = "EMPTY_RESPONSE"
	ALL_CANDIDATES_FAILED = "ALL_CANDIDATES_FAILED"
	UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class ProviderError:
	code: ProviderErrorCode
	message: str
	provider: str = ""

	def __str__(self) -> str:
		return f"{self.code.value}: {self.message}"


@dataclass(frozen=True)
class ProviderResult:
	"""Raw model output, or the reason there is none."""

	provider: str
	text: str = ""
	model: Optional[str] = None
	error: Optional[ProviderError] = None

	@property
	def ok(self) -> bool:
		return self.error is None

	@classmethod
	def success(cls, provider: str, text: str, model: Optional[str] = None) -> "ProviderResult":
		return cls(provider=provider, text=text, model=model)

	@classmethod
	def failure(cls, provider: str, code: ProviderErrorCode, message: str, model: Optional[str] = None) -> "ProviderResult":
		return cls(provider=provider, model=model, error=ProviderError(code=code, message=message, provider=provider))


@runtime_checkable
class ProviderAdapter(Protocol):
	name: str

	async def generate(self, prompt: str) -> ProviderResult: ...


def classify_http_error(err: httpx.HTTPStatusError) -> ProviderErrorCode:
	status = err.response.status_code
	body = err.response.text.lower() if err.response is not None else ""
	if status == 429 or "quota" in body or "resource_exhausted" in body:
		return ProviderErrorCode.RATE_LIMITED
	return ProviderErrorCode.REQUEST_FAILED


def default_adapters(transport: Optional[httpx.AsyncBaseTransport] = None) -> Dict[ProviderName, ProviderAdapter]:
	from .deepseek_client import DeepSeekClient
	from .gemini_client import GeminiClient

	return {
		ProviderName.GEMINI: GeminiClient(transport=transport),
		ProviderName.DEEPSEEK: DeepSeekClient(transport=transport),
	}
