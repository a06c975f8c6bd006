from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse

from .deps import get_manager
from .. import schemas
from ...core import errors
from ...core.manager import DispenserManager
from ...storage.repository import is_finite_number

router = APIRouter(tags=["dispenser"])


@router.get("/", response_model=schemas.MessageOut)
def health():
    return schemas.MessageOut(message=errors.API_WORKING)


@router.post("/dispenser", response_model=schemas.DispenserOut)
def create_dispenser(
    req: schemas.DispenserCreateRequest,
    manager: DispenserManager = Depends(get_manager),
):
    flow_volume = req.flow_volume

    if flow_volume is None:
        return _error(400, errors.FLOW_VOLUME_REQUIRED)
    # bool is an int subclass, and Infinity/NaN parse as floats; none are volumes
    if not is_finite_number(flow_volume):
        return _error(400, errors.FLOW_VOLUME_MUST_BE_NUMBER)
    if flow_volume <= 0:
        return _error(400, errors.FLOW_VOLUME_POSITIVE)

    dispenser = manager.create_dispenser(flow_volume)
    return schemas.DispenserOut(id=dispenser.id, flow_volume=dispenser.flow_volume)


@router.put("/dispenser/{dispenser_id}/status", status_code=202)
def change_status(
    dispenser_id: str,
    req: schemas.StatusChangeRequest,
    manager: DispenserManager = Depends(get_manager),
):
    if not req.status or not req.updated_at:
        return _error(400, errors.STATUS_UPDATED_AT_FIELDS_REQUIRED)

    result = manager.change_status(dispenser_id, req.status, req.updated_at)
    if not result.success:
        return JSONResponse(status_code=409, content={"message": result.message})

    return Response(status_code=202)


@router.get("/dispenser/{dispenser_id}/spending", response_model=schemas.SpendingOut)
def get_spending(dispenser_id: str, manager: DispenserManager = Depends(get_manager)):
    report = manager.get_spending(dispenser_id)
    return schemas.SpendingOut(**report.to_dict())


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})
