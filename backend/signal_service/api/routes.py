"""REST API routes."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import ORJSONResponse
from pydantic import BaseModel

from signal_service.services import CycleRunner

# orjson renders NaN indicator values as null
router = APIRouter(default_response_class=ORJSONResponse)


class SystemStatus(BaseModel):
    """Runner status response."""

    status: str
    assets: list[str]
    cycle_minutes: int
    running: bool
    loading: bool
    cycle: int
    next_run_at: Optional[str] = None
    last_completed_at: Optional[str] = None
    last_error: Optional[str] = None


def get_runner(request: Request) -> CycleRunner:
    """Cycle runner attached to the app during startup."""
    runner = getattr(request.app.state, "cycle_runner", None)
    if runner is None:
        raise HTTPException(status_code=503, detail="Cycle runner not started")
    return runner


@router.get("/status", response_model=SystemStatus)
async def get_status(runner: CycleRunner = Depends(get_runner)):
    """Get cycle runner status."""
    state = runner.status()
    return SystemStatus(
        status="error" if state["last_error"] else "ok",
        assets=runner.assets,
        cycle_minutes=runner.cycle_minutes,
        **state,
    )


@router.get("/signals")
async def get_signals(runner: CycleRunner = Depends(get_runner)):
    """Get the latest snapshot of all assets."""
    snapshot = runner.snapshot
    if snapshot is None:
        raise HTTPException(status_code=503, detail="No signals yet")
    return snapshot.to_display()


@router.get("/signals/{asset}")
async def get_asset_signal(asset: str, runner: CycleRunner = Depends(get_runner)):
    """Get the latest signal for one asset."""
    snapshot = runner.snapshot
    if snapshot is None:
        raise HTTPException(status_code=503, detail="No signals yet")

    result = snapshot.get(asset.upper())
    if result is None:
        raise HTTPException(status_code=404, detail=f"No signal for {asset}")
    return result.to_display()
