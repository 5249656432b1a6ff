from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from gridcrud.core.deps import get_users_service
from gridcrud.schemas.payloads import MessageResponse
from gridcrud.services.resource_service import ResourceService

router = APIRouter()


@router.get("/ping", response_model=MessageResponse)
def ping():
    return {"message": "pong"}


@router.get("/healthy", response_model=MessageResponse, responses={503: {"model": MessageResponse}})
def healthy(service: ResourceService = Depends(get_users_service)):
    status = service.health()
    if not status.healthy:
        return JSONResponse(status_code=503, content={"message": status.message})
    return {"message": status.message}
