from __future__ import annotations
import logging
import httpx
from typing import Any, Dict, Optional

from .providers import ProviderErrorCode, ProviderResult, SYSTEM_INSTRUCTION, classify_http_error
from .settings import load_settings

logger = logging.getLogger(__name__)

GENERATION_CONFIG: Dict[str, Any] = {
	"temperature": 0.7,
	"topK": 40,
	"topP": 0.95,
	"maxOutputTokens": 4096,
}


class GeminiClient:
	"""Primary provider: one generateContent call, no internal retry.

	Rate limits are reported as RATE_LIMITED and left to the caller.
	"""

	name = "gemini"

	def __init__(
		self,
		api_key: Optional[str] = None,
		*,
		base_url: Optional[str] = None,
		model: Optional[str] = None,
		timeout: Optional[float] = None,
		transport: Optional[httpx.AsyncBaseTransport] = None,
	) -> None:
		self._api_key = api_key
		self._base_url = base_url
		self._model = model
		self._timeout = timeout
		self._transport = transport

	def _resolve(self) -> tuple[Optional[str], str, str, float]:
		# Credentials come from the environment at call time
		cfg = load_settings()
		api_key = self._api_key or cfg.gemini_api_key
		model = self._model or cfg.gemini_model
		base_url = self._base_url or cfg.gemini_base_url or (
			f"https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
		)
		timeout = self._timeout if self._timeout is not None else cfg.provider_timeout_seconds
		return api_key, model, base_url, timeout

	def build_payload(self, prompt: str) -> Dict[str, Any]:
		return {
			"systemInstruction": {"parts": [{"text": SYSTEM_INSTRUCTION}]},
			"contents": [{"role": "user", "parts": [{"text": prompt}]}],
			"generationConfig": dict(GENERATION_CONFIG),
		}

	async def generate(self, prompt: str) -> ProviderResult:
		api_key, model, base_url, timeout = self._resolve()
		if not api_key:
			logger.warning("GEMINI_API_KEY is not configured")
			return ProviderResult.failure(self.name, ProviderErrorCode.MISSING_CREDENTIALS, "GEMINI_API_KEY is not configured", model)
		headers = {"x-goog-api-key": api_key, "Content-Type": "application/json"}
		logger.info("Calling Gemini model %s", model)
		try:
			async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
				r = await client.post(base_url, headers=headers, json=self.build_payload(prompt))
				r.raise_for_status()
		except httpx.HTTPStatusError as http_err:
			code = classify_http_error(http_err)
			logger.error("Gemini model %s returned %s", model, http_err.response.status_code)
			return ProviderResult.failure(self.name, code, f"Gemini HTTP {http_err.response.status_code}: {http_err.response.text[:300]}", model)
		except httpx.TimeoutException:
			logger.error("Gemini model %s timed out after %ss", model, timeout)
			return ProviderResult.failure(self.name, ProviderErrorCode.REQUEST_FAILED, f"Gemini request timed out after {timeout}s", model)
		except httpx.RequestError as net_err:
			logger.error("Gemini request failed: %s", net_err)
			return ProviderResult.failure(self.name, ProviderErrorCode.REQUEST_FAILED, f"Gemini request failed: {net_err}", model)
		try:
			text = extract_text(r.json())
		except ValueError:
			return ProviderResult.failure(self.name, ProviderErrorCode.EMPTY_RESPONSE, f"Unexpected Gemini response: {r.text[:300]}", model)
		if not text.strip():
			return ProviderResult.failure(self.name, ProviderErrorCode.EMPTY_RESPONSE, "Gemini returned no text", model)
		logger.info("Gemini model %s succeeded", model)
		return ProviderResult.success(self.name, text, model)


def extract_text(data: Any) -> str:
	"""Concatenate the text parts of the first candidate; empty when there are none."""
	if not isinstance(data, dict):
		return ""
	candidates = data.get("candidates")
	if not isinstance(candidates, list) or not candidates or not isinstance(candidates[0], dict):
		return ""
	content = candidates[0].get("content")
	parts = content.get("parts") if isinstance(content, dict) else None
	if not isinstance(parts, list):
		return ""
	return "".join(str(p.get("text") or "") for p in parts if isinstance(p, dict))
