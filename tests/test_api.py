from __future__ import annotations

import httpx
import pytest

from fakes import FakeAdapter, failure
from kyozai.main import app
from kyozai.options import ProviderName
from kyozai.orchestrator import MaterialGenerator
from kyozai.providers import ProviderErrorCode
from kyozai.routers.generate import get_generator

VALID_QUIZ = (
    "# 光合成 - 小テスト\n\n以下の問題に答えなさい。\n\n"
    "## 問1. 光合成で使われるエネルギーは何か。\n\n"
    "## 問2. 光合成が行われる細胞小器官は何か。\n\n"
    "## 問3. 光合成で放出される気体は何か。\n\n"
    "解答:\n1. 光エネルギー\n2. 葉緑体\n3. 酸素"
)


@pytest.fixture()
def adapters():
    scripted = {
        ProviderName.GEMINI: FakeAdapter("gemini"),
        ProviderName.DEEPSEEK: FakeAdapter("deepseek"),
    }
    app.dependency_overrides[get_generator] = lambda: MaterialGenerator(scripted)
    yield scripted
    app.dependency_overrides.clear()


@pytest.fixture()
async def api_client():
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.mark.anyio
async def test_generate_material_success(api_client: httpx.AsyncClient, adapters):
    adapters[ProviderName.GEMINI].responses.append(VALID_QUIZ)
    resp = await api_client.post(
        "/api/generate-material",
        json={"text": "光合成の説明文。", "materialType": "quiz", "options": {"questionCount": 6, "title": "光合成"}},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["content"] == VALID_QUIZ
    assert body["status"] == "accepted"
    assert body["provider"] == "gemini"
    assert body["warnings"] == []
    assert "問題数: 6問" in adapters[ProviderName.GEMINI].prompts[0]


@pytest.mark.anyio
async def test_generation_failure_is_reported_in_body_with_200(api_client: httpx.AsyncClient, adapters):
    adapters[ProviderName.GEMINI].responses.append(failure("gemini", ProviderErrorCode.RATE_LIMITED, "quota exceeded"))
    resp = await api_client.post(
        "/api/generate-material",
        json={"text": "本文", "materialType": "summary", "options": {"title": "光合成"}},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is False
    assert "quota exceeded" in body["error"]
    assert body["content"].startswith("# 光合成 - まとめシート")
    assert adapters[ProviderName.DEEPSEEK].prompts == []


@pytest.mark.anyio
async def test_residual_warnings_are_returned(api_client: httpx.AsyncClient, adapters):
    adapters[ProviderName.GEMINI].responses.extend(["# 小テスト\n\n問題なし", "# 小テスト\n\nまだ問題なし"])
    resp = await api_client.post("/api/generate-material", json={"text": "本文", "materialType": "quiz"})
    body = resp.json()
    assert body["success"] is True
    assert body["status"] == "accepted_with_warnings"
    assert body["warnings"]


@pytest.mark.anyio
@pytest.mark.parametrize("options", [None, "quiz", [1, 2]])
async def test_unusable_options_fall_back_to_defaults(api_client: httpx.AsyncClient, adapters, options):
    adapters[ProviderName.GEMINI].responses.extend([VALID_QUIZ, VALID_QUIZ])
    resp = await api_client.post(
        "/api/generate-material",
        json={"text": "本文", "materialType": "quiz", "options": options},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert "問題数: 10問" in adapters[ProviderName.GEMINI].prompts[0]


@pytest.mark.anyio
async def test_missing_text_is_a_bad_request(api_client: httpx.AsyncClient, adapters):
    resp = await api_client.post("/api/generate-material", json={"materialType": "quiz"})
    assert resp.status_code == 400


@pytest.mark.anyio
async def test_material_types_listed_with_labels(api_client: httpx.AsyncClient):
    resp = await api_client.get("/api/material-types")
    assert resp.status_code == 200
    labels = {item["value"]: item["label"] for item in resp.json()}
    assert labels["fill-in-blank"] == "穴埋めプリント"
    assert labels["flashcards"] == "フラッシュカード"


@pytest.mark.anyio
async def test_guest_session_round_trip(api_client: httpx.AsyncClient):
    resp = await api_client.post("/auth/guest")
    assert resp.status_code == 200
    token = resp.json()["access_token"]
    me = await api_client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["username"].startswith("guest-")
    assert me.json()["guest"] is True


@pytest.mark.anyio
async def test_me_rejects_bad_token(api_client: httpx.AsyncClient):
    resp = await api_client.get("/auth/me", headers={"Authorization": "Bearer not-a-token"})
    assert resp.status_code == 401


@pytest.mark.anyio
async def test_health_and_info(api_client: httpx.AsyncClient, monkeypatch: pytest.MonkeyPatch):
    assert (await api_client.get("/health")).json() == {"status": "ok"}
    monkeypatch.setenv("DEEPSEEK_API_KEY", "k")
    info = (await api_client.get("/info")).json()
    assert info["gemini_configured"] is False
    assert info["deepseek_configured"] is True
