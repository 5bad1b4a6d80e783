import logging
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from ..options import GenerationOptions, GenerationRequest, MATERIAL_LABELS, MaterialType, material_label
from ..orchestrator import GenerationError, MaterialGenerator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["generation"])


class GenerateMaterialBody(BaseModel):
	text: Optional[str] = None
	materialType: Optional[str] = None
	# Anything but an object falls back to default options
	options: Optional[Any] = None


class GenerateMaterialResponse(BaseModel):
	content: str
	success: bool
	error: Optional[str] = None
	status: Optional[str] = None
	provider: Optional[str] = None
	warnings: List[str] = Field(default_factory=list)


def get_generator() -> MaterialGenerator:
	return MaterialGenerator()


def fallback_content(material_type: MaterialType, options: GenerationOptions) -> str:
	"""Placeholder shown when nothing could be generated; the user edits it by hand."""
	return (
		f"# {options.title} - {material_label(material_type)}\n\n"
		"申し訳ありません。教材を自動生成できませんでした。\n\n"
		"## 手動で作成する場合\n"
		"- エディタでこの内容を編集して教材を作成できます\n"
		"- 保存ボタンで作成した教材を保存できます\n"
		"- しばらくしてから、もう一度生成をお試しください"
	)


@router.get("/material-types")
def material_types():
	return [{"value": t.value, "label": label} for t, label in MATERIAL_LABELS.items()]


@router.post("/generate-material", response_model=GenerateMaterialResponse)
async def generate_material(body: GenerateMaterialBody, generator: MaterialGenerator = Depends(get_generator)):
	if not (body.text or "").strip() or not (body.materialType or "").strip():
		raise HTTPException(status_code=400, detail="テキストと教材タイプは必須です")
	options = GenerationOptions.from_raw(body.options)
	request = GenerationRequest(source_text=body.text, material_type=body.materialType, options=options)
	# Failures are reported in the body with 200 so the client can always render it
	try:
		outcome = await generator.generate(request)
	except GenerationError as e:
		for err in e.errors:
			logger.warning("%s failed: %s", err.provider, err.message)
		logger.warning("generation failed: %s", e)
		return GenerateMaterialResponse(
			content=fallback_content(request.material_type, options),
			success=False,
			error=f"教材生成中にエラーが発生しました: {e.message}",
		)
	except Exception as e:
		logger.exception("unexpected error in generate-material")
		return GenerateMaterialResponse(
			content=fallback_content(request.material_type, options),
			success=False,
			error=f"教材生成中にエラーが発生しました: {e}",
		)
	return GenerateMaterialResponse(
		content=outcome.content,
		success=True,
		status=outcome.status.value,
		provider=outcome.provider,
		warnings=list(outcome.warnings),
	)
