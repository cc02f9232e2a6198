import asyncio

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..container import MediaServices
from ..dependencies import api_limit, get_services, require_api_key
from ..schemas import MetadataRequest

library_router = APIRouter(
    tags=["library"],
    dependencies=[Depends(require_api_key), Depends(api_limit)],
)


@library_router.get("/list")
async def list_files(services: MediaServices = Depends(get_services)) -> JSONResponse:
    listing = await asyncio.to_thread(services.library.list)
    # The listing changes with every upload, unlike the files themselves
    return JSONResponse(listing, headers={"Cache-Control": "no-store"})


@library_router.get("/stats")
async def storage_stats(services: MediaServices = Depends(get_services)) -> dict:
    stats = await asyncio.to_thread(services.library.stats)
    stats["rateLimits"] = services.limiter.stats()
    return stats


@library_router.post("/metadata")
async def file_metadata(
    req: MetadataRequest,
    services: MediaServices = Depends(get_services),
) -> dict:
    kind, path = await asyncio.to_thread(services.library.resolve_url, req.url, req.type)
    result = await services.ingestion.describe_stored(kind, path, url=req.url)
    return result.to_dict()
