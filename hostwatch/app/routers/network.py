from fastapi import APIRouter, Depends

from hostwatch.app.core.security import verify_token
from hostwatch.app.schemas.network import LatestScanResponse, ScanResponse
from hostwatch.app.state import MonitorState, get_state


router = APIRouter(prefix="/api/network", tags=["network"], dependencies=[Depends(verify_token)])


@router.get("/scan", response_model=ScanResponse)
async def scan_network(state: MonitorState = Depends(get_state)) -> ScanResponse:
    snapshot = await state.scanner.refresh()
    return ScanResponse(devices=list(snapshot.devices), local_ip=snapshot.local_ip)


@router.get("/latest", response_model=LatestScanResponse)
async def latest_scan(state: MonitorState = Depends(get_state)) -> LatestScanResponse:
    snapshot = await state.scanner.latest()
    if snapshot is None:
        return LatestScanResponse(devices=[])
    return LatestScanResponse(
        devices=list(snapshot.devices),
        timestamp=int(snapshot.captured_at),
        local_ip=snapshot.local_ip,
    )
