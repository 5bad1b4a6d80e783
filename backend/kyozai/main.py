import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .settings import settings, load_settings
from .routers import health, generate
from .routers import auth

logging.basicConfig(
	level=settings.log_level.upper(),
	format="%(asctime)s %(levelname)s %(name)s %(message)s",
)

app = FastAPI(title="Kyozai Material Generator API")
app.add_middleware(
	CORSMiddleware,
	allow_origins=[o.strip() for o in settings.cors_origins.split(",") if o.strip()],
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)
app.include_router(health.router)
app.include_router(generate.router)
app.include_router(auth.router)


@app.get("/info")
def root():
	# Re-read so the answer reflects the current environment
	cfg = load_settings()
	return {
		"status": "ok",
		"gemini_configured": cfg.gemini_configured,
		"deepseek_configured": cfg.deepseek_configured,
		"deepseek_models": cfg.deepseek_models,
	}


def run() -> None:
	import uvicorn

	uvicorn.run("kyozai.main:app", host="127.0.0.1", port=8000)
