"""API routes for resident files and signed downloads."""

from uuid import UUID

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from fastapi.responses import FileResponse

from carehome.api.deps import get_current_actor, get_storage
from carehome.api.schemas.system import SignedUrlResponse, StoredFileResponse
from carehome.core.exceptions import InvalidInputError, PayloadTooLargeError
from carehome.policy import Actor
from carehome.services.storage import ResidentFileStorage, StoredFile

UPLOAD_CHUNK_SIZE = 64 * 1024

router = APIRouter(prefix="/api/files", tags=["files"])


async def read_bounded(file: UploadFile, max_bytes: int) -> bytes:
    """Read an upload in chunks, refusing it once it grows past ``max_bytes``."""
    if file.size is not None and file.size > max_bytes:
        raise PayloadTooLargeError(details={"size": file.size, "max_bytes": max_bytes})
    chunks: list[bytes] = []
    received = 0
    while chunk := await file.read(UPLOAD_CHUNK_SIZE):
        received += len(chunk)
        if received > max_bytes:
            raise PayloadTooLargeError(details={"max_bytes": max_bytes})
        chunks.append(chunk)
    return b"".join(chunks)


@router.get("/download")
async def download_file(
    key: str = Query(...),
    expires: int = Query(...),
    signature: str = Query(...),
    storage: ResidentFileStorage = Depends(get_storage),
) -> FileResponse:
    """Serve a file from a signed URL; the signature is the only credential."""
    path = storage.open_signed(key, expires, signature)
    return FileResponse(path, filename=path.name)


@router.get("/{profile_id}", response_model=list[StoredFileResponse])
async def list_files(
    profile_id: UUID,
    actor: Actor = Depends(get_current_actor),
    storage: ResidentFileStorage = Depends(get_storage),
) -> list[StoredFile]:
    return await storage.list_files(actor, profile_id)


@router.post(
    "/{profile_id}", response_model=StoredFileResponse, status_code=status.HTTP_201_CREATED
)
async def upload_file(
    profile_id: UUID,
    file: UploadFile = File(...),
    upsert: bool = Query(True, description="Overwrite a file with the same name"),
    actor: Actor = Depends(get_current_actor),
    storage: ResidentFileStorage = Depends(get_storage),
) -> StoredFile:
    if not file.filename:
        raise InvalidInputError("Uploaded file has no name", field="file")
    data = await read_bounded(file, storage.settings.max_upload_bytes)
    return await storage.upload(actor, profile_id, file.filename, data, upsert=upsert)


@router.post("/{profile_id}/{filename}/sign", response_model=SignedUrlResponse)
async def sign_file(
    profile_id: UUID,
    filename: str,
    expires_in: int | None = Query(None, ge=1, le=3600),
    actor: Actor = Depends(get_current_actor),
    storage: ResidentFileStorage = Depends(get_storage),
):
    return await storage.create_signed_url(actor, profile_id, filename, expires_in)


@router.delete("/{profile_id}/{filename}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_file(
    profile_id: UUID,
    filename: str,
    actor: Actor = Depends(get_current_actor),
    storage: ResidentFileStorage = Depends(get_storage),
) -> None:
    await storage.delete(actor, profile_id, filename)
