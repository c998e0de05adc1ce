import logging
import httpx
from fastapi import HTTPException, status
from taxitao.core.config import Settings

logger = logging.getLogger(__name__)
settings = Settings()

MAX_IMAGE_BYTES = 5 * 1024 * 1024
ALLOWED_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/webp"}

UPLOAD_FOLDERS = {
    "profile": "taxi-drivers",
    "car": "taxi-cars",
}


def validate_image(content_type: str | None, size: int):
    if content_type not in ALLOWED_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid file type. Please upload a JPEG, PNG, or WebP image."
        )
    if size > MAX_IMAGE_BYTES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="File is too large. Maximum size is 5MB."
        )


async def upload_image(
    filename: str,
    content: bytes,
    content_type: str,
    folder: str,
    transport: httpx.AsyncBaseTransport | None = None
) -> dict:
    if not settings.CLOUDINARY_CLOUD_NAME or not settings.CLOUDINARY_UPLOAD_PRESET:
        logger.error("Cloudinary is not configured")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Image upload not configured")

    url = f"https://api.cloudinary.com/v1_1/{settings.CLOUDINARY_CLOUD_NAME}/image/upload"
    data = {"upload_preset": settings.CLOUDINARY_UPLOAD_PRESET, "folder": folder}
    files = {"file": (filename, content, content_type)}

    try:
        async with httpx.AsyncClient(timeout=30.0, transport=transport) as client:
            resp = await client.post(url, data=data, files=files)
    except httpx.TimeoutException:
        logger.error("Cloudinary upload timed out")
        raise HTTPException(status_code=status.HTTP_504_GATEWAY_TIMEOUT, detail="Image upload timed out")
    except httpx.HTTPError as e:
        logger.error(f"Cloudinary upload failed: {e}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Image service unavailable")

    if not resp.is_success:
        logger.error(f"Cloudinary error {resp.status_code}: {resp.text}")
        raise HTTPException(status_code=resp.status_code, detail="Failed to upload image")

    body = resp.json()
    return {
        "url": body["secure_url"],
        "publicId": body["public_id"],
        "width": body.get("width", 0),
        "height": body.get("height", 0),
    }
