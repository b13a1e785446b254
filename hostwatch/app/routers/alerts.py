import time

from fastapi import APIRouter, Depends

from hostwatch.app.core.security import verify_token
from hostwatch.app.schemas.alerts import AlertsResponse
from hostwatch.app.state import MonitorState, get_state


router = APIRouter(prefix="/api", tags=["alerts"], dependencies=[Depends(verify_token)])


@router.get("/alerts", response_model=AlertsResponse)
async def get_alerts(state: MonitorState = Depends(get_state)) -> AlertsResponse:
    latest = await state.store.latest()
    alerts = await state.evaluator.evaluate(latest)
    return AlertsResponse(alerts=alerts, timestamp=int(time.time()))
