from fastapi import APIRouter

from web.backend.deps import get_timer

router = APIRouter()


@router.get("")
async def get_session():
    return get_timer().snapshot()


@router.post("/start")
async def start_session():
    timer = get_timer()
    started = timer.start()
    payload = timer.snapshot()
    payload["started"] = started
    return payload


@router.post("/stop")
async def stop_session():
    timer = get_timer()
    finished = timer.stop()
    payload = timer.snapshot()
    payload["finished_seconds"] = finished
    return payload
