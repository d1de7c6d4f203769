from fastapi import APIRouter, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from errors import ok

router = APIRouter()


@router.get("/health")
async def health(request: Request):
    """
    Health-check endpoint with the number of cached jobs.
    """
    return ok(jobs=len(request.app.state.store))


@router.get("/metrics", include_in_schema=False)
def metrics():
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
