from fastapi import APIRouter, HTTPException

from clickbin.errors import ClickBinError
from clickbin.models.binning import BinningRequest, EventCountTable
from clickbin.services.event_binner import bin_events

router = APIRouter(prefix="/api/binning", tags=["binning"])


@router.post("", response_model=EventCountTable)
async def bin_clicks(request: BinningRequest):
    """Bin clicks per event on one feature and return the count table."""
    try:
        return bin_events(
            request.clicks,
            request.feature_name,
            request.bin_width,
            range_start=request.range_start,
            range_end=request.range_end,
            out_of_range=request.out_of_range,
        )
    except ClickBinError as e:
        raise HTTPException(status_code=422, detail=str(e))
