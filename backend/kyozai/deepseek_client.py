from __future__ import annotations
import logging
import httpx
from typing import Any, Dict, List, Optional, Sequence

from .providers import ProviderErrorCode, ProviderResult, SYSTEM_INSTRUCTION, classify_http_error
from .settings import load_settings

logger = logging.getLogger(__name__)

SAMPLING: Dict[str, Any] = {
	"temperature": 0.7,
	"top_p": 0.95,
	"max_tokens": 4096,
}


class DeepSeekClient:
	"""Secondary provider over an OpenAI-compatible chat completions API.

	The model catalog behind this endpoint changes without notice, so the
	client walks an ordered list of candidate model ids and returns the first
	success. It only gives up once every candidate has failed.
	"""

	name = "deepseek"

	def __init__(
		self,
		api_key: Optional[str] = None,
		*,
		base_url: Optional[str] = None,
		models: Optional[Sequence[str]] = None,
		timeout: Optional[float] = None,
		transport: Optional[httpx.AsyncBaseTransport] = None,
	) -> None:
		self._api_key = api_key
		self._base_url = base_url
		self._models = list(models) if models is not None else None
		self._timeout = timeout
		self._transport = transport

	def _resolve(self) -> tuple[Optional[str], str, List[str], float]:
		cfg = load_settings()
		api_key = self._api_key or cfg.deepseek_api_key
		base_url = (self._base_url or cfg.deepseek_base_url).rstrip("/")
		models = self._models if self._models is not None else cfg.deepseek_models
		timeout = self._timeout if self._timeout is not None else cfg.provider_timeout_seconds
		return api_key, base_url, models, timeout

	def build_payload(self, prompt: str, model: str) -> Dict[str, Any]:
		return {
			"model": model,
			"messages": [
				{"role": "system", "content": SYSTEM_INSTRUCTION},
				{"role": "user", "content": prompt},
			],
			**SAMPLING,
		}

	async def generate(self, prompt: str) -> ProviderResult:
		api_key, base_url, models, timeout = self._resolve()
		if not api_key:
			logger.warning("DEEPSEEK_API_KEY is not configured")
			return ProviderResult.failure(self.name, ProviderErrorCode.MISSING_CREDENTIALS, "DEEPSEEK_API_KEY is not configured")
		if not models:
			return ProviderResult.failure(self.name, ProviderErrorCode.ALL_CANDIDATES_FAILED, "no candidate models configured")
		headers = {"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"}
		url = f"{base_url}/chat/completions"
		last: Optional[ProviderResult] = None
		async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
			for model in models:
				logger.info("Trying DeepSeek model %s", model)
				result = await self._call_model(client, url, headers, prompt, model)
				if result.ok:
					logger.info("DeepSeek model %s succeeded", model)
					return result
				logger.warning("DeepSeek model %s failed: %s", model, result.error)
				last = result
		message = f"all {len(models)} candidate models failed"
		if last is not None and last.error is not None:
			message += f"; last error from {last.model}: {last.error}"
		logger.error("DeepSeek: %s", message)
		return ProviderResult.failure(self.name, ProviderErrorCode.ALL_CANDIDATES_FAILED, message, last.model if last else None)

	async def _call_model(
		self,
		client: httpx.AsyncClient,
		url: str,
		headers: Dict[str, str],
		prompt: str,
		model: str,
	) -> ProviderResult:
		try:
			r = await client.post(url, headers=headers, json=self.build_payload(prompt, model))
			r.raise_for_status()
		except httpx.HTTPStatusError as http_err:
			code = classify_http_error(http_err)
			return ProviderResult.failure(self.name, code, f"HTTP {http_err.response.status_code}: {http_err.response.text[:300]}", model)
		except httpx.TimeoutException:
			return ProviderResult.failure(self.name, ProviderErrorCode.REQUEST_FAILED, "request timed out", model)
		except httpx.RequestError as net_err:
			return ProviderResult.failure(self.name, ProviderErrorCode.REQUEST_FAILED, f"request failed: {net_err}", model)
		try:
			data = r.json()
			text = data["choices"][0]["message"]["content"] or ""
		except (ValueError, KeyError, IndexError, TypeError):
			return ProviderResult.failure(self.name, ProviderErrorCode.EMPTY_RESPONSE, f"unexpected response: {r.text[:300]}", model)
		if not text.strip():
			return ProviderResult.failure(self.name, ProviderErrorCode.EMPTY_RESPONSE, "empty completion", model)
		return ProviderResult.success(self.name, text, model)
