from typing import Optional, Union

from fastapi import APIRouter, Body, Query, Request

from box_worker import JobDriver
from errors import ok
from jobs import JobStatus
from services.minting import CompletionConsumer
from services.status_reader import StatusReader

router = APIRouter(prefix="/api", tags=["box"])

FidValue = Optional[Union[int, str]]


def _driver(request: Request) -> JobDriver:
    return request.app.state.driver


def _reader(request: Request) -> StatusReader:
    return request.app.state.status_reader


def _consumer(request: Request) -> CompletionConsumer:
    return request.app.state.consumer


@router.post("/start-generation")
async def start_generation(request: Request, fid: FidValue = Body(None, embed=True)):
    result = await _driver(request).start(fid)
    record = result.record

    if record.status == JobStatus.READY:
        return ok(**record.public())
    if result.admitted:
        return ok(status=record.status.value, message="Generation started.")
    return ok(status=record.status.value, message="Generation already running.")


@router.get("/status")
async def job_status(request: Request, fid: Optional[str] = Query(None)):
    record = _reader(request).status(fid)
    return ok(**record.public())


@router.post("/mint-nft")
async def mint_nft(
    request: Request,
    fid: FidValue = Body(None),
    recipient_address: Optional[str] = Body(None, alias="recipientAddress"),
):
    result = await _consumer(request).finalize(fid, recipient_address)
    return ok(success=True, txHash=result.tx_reference)
