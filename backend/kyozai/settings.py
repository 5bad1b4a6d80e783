from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

DEFAULT_DEEPSEEK_MODELS = [
	"deepseek-v3-base",
	"deepseek-v3",
	"deepseek-llm-7b-chat",
	"deepseek-chat-7b",
	"deepseek-llm",
	"deepseek-coder-6.7b-instruct",
	"deepseek-coder",
	"deepseek-chat",
	"deepseek-v2",
]


class Settings(BaseSettings):
	# Primary provider (Google AI Studio, Generative Language API)
	gemini_api_key: str | None = Field(default=None, validation_alias="GEMINI_API_KEY")
	gemini_model: str = Field(default="gemini-1.5-flash", validation_alias="GEMINI_MODEL")
	gemini_base_url: str | None = Field(default=None, validation_alias="GEMINI_BASE_URL")

	# Secondary provider (OpenAI-compatible chat completions)
	deepseek_api_key: str | None = Field(default=None, validation_alias="DEEPSEEK_API_KEY")
	deepseek_base_url: str = Field(default="https://api.deepseek.com/v1", validation_alias="DEEPSEEK_API_BASE_URL")
	# Comma separated, tried in order; the catalog changes without notice
	deepseek_models_csv: str = Field(default=",".join(DEFAULT_DEEPSEEK_MODELS), validation_alias="DEEPSEEK_MODELS")

	provider_timeout_seconds: float = Field(default=60.0, validation_alias="PROVIDER_TIMEOUT_SECONDS")
	# Characters of source text sent to the model
	source_text_budget: int = Field(default=5500, validation_alias="SOURCE_TEXT_BUDGET")

	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
	cors_origins: str = Field(default="http://localhost:3000,http://127.0.0.1:3000", validation_alias="CORS_ORIGINS")

	# Guest sessions
	jwt_secret_key: str = Field(default="change-me", validation_alias="JWT_SECRET_KEY")
	jwt_algorithm: str = Field(default="HS256", validation_alias="JWT_ALGORITHM")
	access_token_expire_minutes: int = Field(default=120, validation_alias="ACCESS_TOKEN_EXPIRE_MINUTES")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore")

	@property
	def deepseek_models(self) -> list[str]:
		return [m.strip() for m in self.deepseek_models_csv.split(",") if m.strip()]

	@property
	def gemini_configured(self) -> bool:
		return bool(self.gemini_api_key)

	@property
	def deepseek_configured(self) -> bool:
		return bool(self.deepseek_api_key)


def load_settings() -> Settings:
	"""Read configuration from the environment right now.

	Provider credentials are resolved per call so that rotating a key does not
	require a restart.
	"""
	return Settings()


settings = Settings()
