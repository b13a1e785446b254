import asyncio
import logging

from fastapi import APIRouter, Depends

from hostwatch.app.core.security import verify_token
from hostwatch.app.schemas.metrics import DiskVolume, InterfaceCounters, NetworkRatePoint, Sample
from hostwatch.app.services.rates import compute_network_rates
from hostwatch.app.state import MonitorState, get_state


router = APIRouter(prefix="/api", tags=["system"], dependencies=[Depends(verify_token)])
logger = logging.getLogger(__name__)


@router.get("/system", response_model=list[Sample])
async def get_system_history(state: MonitorState = Depends(get_state)) -> list[Sample]:
    return await state.store.read_all()


@router.get("/disks", response_model=list[DiskVolume])
async def list_disks(state: MonitorState = Depends(get_state)) -> list[DiskVolume]:
    try:
        return await asyncio.to_thread(state.probe.disks, state.settings.min_disk_bytes)
    except Exception as exc:  # pragma: no cover
        logger.warning("Disk listing failed: %s", exc)
        return []


@router.get("/network", response_model=list[InterfaceCounters])
async def list_interfaces(state: MonitorState = Depends(get_state)) -> list[InterfaceCounters]:
    try:
        return await asyncio.to_thread(state.probe.interfaces)
    except Exception as exc:  # pragma: no cover
        logger.warning("Interface listing failed: %s", exc)
        return []


@router.get("/network/rates", response_model=list[NetworkRatePoint])
async def get_network_rates(state: MonitorState = Depends(get_state)) -> list[NetworkRatePoint]:
    return compute_network_rates(await state.store.read_all())
