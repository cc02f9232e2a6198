import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile

from media_server.core.errors import BadRequestError, FileTooLargeError
from media_server.features.ingestion.domain.models import UploadRequest
from ..container import MediaServices
from ..dependencies import get_services, require_api_key, upload_limit

logger = logging.getLogger(__name__)

READ_CHUNK_BYTES = 1024 * 1024

upload_router = APIRouter(tags=["upload"])


async def read_limited(file: UploadFile, max_bytes: int) -> bytes:
    """Reads the whole upload, failing as soon as it grows past max_bytes."""
    chunks = []
    received = 0
    while True:
        chunk = await file.read(READ_CHUNK_BYTES)
        if not chunk:
            break
        received += len(chunk)
        if received > max_bytes:
            raise FileTooLargeError(
                "File too large",
                {"maxFileSizeMB": max_bytes // (1024 * 1024)},
            )
        chunks.append(chunk)
    return b"".join(chunks)


@upload_router.post("/upload", dependencies=[Depends(require_api_key), Depends(upload_limit)])
async def upload_file(
    file: Optional[UploadFile] = File(None),
    services: MediaServices = Depends(get_services),
) -> dict:
    if file is None:
        raise BadRequestError("No file provided")

    try:
        data = await read_limited(file, services.settings.MAX_FILE_SIZE_BYTES)
    finally:
        await file.close()

    if not data:
        raise BadRequestError("Uploaded file is empty")

    result = await services.ingestion.ingest(
        UploadRequest(data=data, original_filename=file.filename or "upload")
    )
    return result.to_dict()
