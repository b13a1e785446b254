import asyncio

from fastapi import APIRouter, Depends, Query

from hostwatch.app.core.security import verify_token
from hostwatch.app.schemas.processes import KillResponse, ProcessListResponse, ProcessSortKey
from hostwatch.app.state import MonitorState, get_state


router = APIRouter(prefix="/api/processes", tags=["processes"], dependencies=[Depends(verify_token)])


@router.get("", response_model=ProcessListResponse)
async def list_processes(
    sort: ProcessSortKey = Query(ProcessSortKey.CPU),
    limit: int = Query(20, ge=1, le=1000),
    state: MonitorState = Depends(get_state),
) -> ProcessListResponse:
    processes = await asyncio.to_thread(state.processes.list_processes, sort, limit)
    return ProcessListResponse(processes=processes, count=len(processes))


@router.post("/{pid}/kill", response_model=KillResponse)
async def kill_process(pid: int, state: MonitorState = Depends(get_state)) -> KillResponse:
    success = await asyncio.to_thread(state.processes.kill, pid)
    return KillResponse(success=success)
