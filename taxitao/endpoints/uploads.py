from typing import Literal
from fastapi import APIRouter, Depends, UploadFile
from taxitao.core.http_client import TransportDep
from taxitao.services.utils import AuthHelpers
from taxitao.services.image_upload import UPLOAD_FOLDERS, validate_image, upload_image

auth = AuthHelpers()
router = APIRouter(prefix="/v1/uploads", tags=["Uploads"])


@router.post("/{kind}")
async def upload(
    kind: Literal["profile", "car"],
    file: UploadFile,
    transport: TransportDep,
    user_data: dict = Depends(auth.verify_role(["driver", "customer", "admin"]))
) -> dict:
    content = await file.read()
    validate_image(file.content_type, len(content))
    return await upload_image(
        file.filename or "upload",
        content,
        file.content_type,
        UPLOAD_FOLDERS[kind],
        transport=transport,
    )
