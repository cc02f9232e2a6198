import asyncio

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from media_server.core.errors import FileNotFoundInStorageError
from ..container import MediaServices
from ..dependencies import api_limit, get_services, require_api_key

# Stored names embed a random id and content never changes in place
IMMUTABLE_CACHE_CONTROL = "public, max-age=31536000, immutable"

files_router = APIRouter(prefix="/files", tags=["files"])


@files_router.api_route("/{subdir}/{filename}", methods=["GET", "HEAD"])
async def serve_file(
    subdir: str,
    filename: str,
    services: MediaServices = Depends(get_services),
) -> FileResponse:
    path = services.storage.fs.resolve(subdir, filename)
    if not await asyncio.to_thread(path.is_file):
        raise FileNotFoundInStorageError("File not found", {"filename": filename})

    return FileResponse(path, headers={"Cache-Control": IMMUTABLE_CACHE_CONTROL})


@files_router.delete("/{subdir}/{filename}", dependencies=[Depends(require_api_key), Depends(api_limit)])
async def delete_file(
    subdir: str,
    filename: str,
    services: MediaServices = Depends(get_services),
) -> dict:
    return await asyncio.to_thread(services.library.delete, subdir, filename)
