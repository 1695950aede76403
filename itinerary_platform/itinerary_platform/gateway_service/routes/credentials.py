from fastapi import APIRouter, Depends, Request

from ..auth import CredentialService
from ..schemas import Credentials, ErrorResponse, MessageResponse

router = APIRouter(tags=["credentials"])

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


def get_credential_service(request: Request) -> CredentialService:
    return request.app.state.credential_service


@router.post("/signup", response_model=MessageResponse, responses=ERROR_RESPONSES)
def signup(payload: Credentials, service: CredentialService = Depends(get_credential_service)):
    service.register(payload.username, payload.password)
    return MessageResponse(message="user created")


@router.post("/signin", response_model=MessageResponse, responses=ERROR_RESPONSES)
def signin(payload: Credentials, service: CredentialService = Depends(get_credential_service)):
    service.authenticate(payload.username, payload.password)
    return MessageResponse(message="login success")
