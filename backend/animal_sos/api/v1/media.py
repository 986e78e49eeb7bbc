from fastapi import APIRouter, Depends, File, UploadFile, status

from animal_sos.api.deps import get_current_identity
from animal_sos.schemas.identity import Identity
from animal_sos.schemas.report import MediaRef
from animal_sos.services.storage_service import MediaStorage

router = APIRouter()


@router.post("/", response_model=MediaRef, status_code=status.HTTP_201_CREATED)
async def upload_media(
    file: UploadFile = File(...),
    identity: Identity = Depends(get_current_identity),
):
    """
    Upload an image or video. The returned reference is what a new report
    carries in its `media` field.
    """
    MediaStorage.kind_for(file.content_type)
    content = await MediaStorage.read_upload(file)
    return await MediaStorage.upload(file.filename, file.content_type, content)
