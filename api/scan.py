import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from api.deps import get_gemini_provider
from api.security import get_current_user
from db.models import User
from services.errors import ModelInvocationFailed
from services.providers import GeminiProvider

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/scan", tags=["scan"])


@router.post("/barcode")
async def detect_barcode(
    image: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    gemini: GeminiProvider = Depends(get_gemini_provider),
):
    """
    Read the barcode from a photo of the packaging.

    Args:
        image: Photo of the carton or label

    Returns {"barcode": null} when no barcode could be read.
    """
    try:
        image_bytes = await image.read()
    except Exception as e:
        logger.warning("File read error: %s", e)
        raise HTTPException(status_code=400, detail="Error reading uploaded file.")

    if not image_bytes:
        raise HTTPException(status_code=400, detail="Uploaded image is empty.")

    try:
        barcode = await gemini.read_barcode(image_bytes, image.content_type or "image/jpeg")
    except ModelInvocationFailed as e:
        raise HTTPException(status_code=502, detail=f"Gemini API error: {e.reason}")

    return {"barcode": barcode}
