"""/v1/clients - list, create and update borrowers"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request

from loan_tracker.api.dependencies import get_client_service, get_current_account, get_request_id
from loan_tracker.api.errors import domain_errors
from loan_tracker.api.v1.schemas import ClientRequest, ClientResponse
from loan_tracker.domain.models import Account
from loan_tracker.services.clients import ClientService

router = APIRouter()


@router.get("/clients", response_model=List[ClientResponse])
def list_clients(
    request: Request,
    q: Optional[str] = Query(None, description="Case-insensitive name filter"),
    account: Account = Depends(get_current_account),
    clients: ClientService = Depends(get_client_service),
):
    """Clients of the signed-in account, sorted by name"""
    with domain_errors("list clients", get_request_id(request)):
        result = clients.list_clients(account.id, q)
    return [ClientResponse.model_validate(c) for c in result]


@router.post("/clients", response_model=ClientResponse, status_code=201)
def create_client(
    body: ClientRequest,
    request: Request,
    account: Account = Depends(get_current_account),
    clients: ClientService = Depends(get_client_service),
):
    with domain_errors("create client", get_request_id(request)):
        client = clients.create_client(account.id, **body.model_dump())
    return ClientResponse.model_validate(client)


@router.put("/clients/{client_id}", response_model=ClientResponse)
def update_client(
    client_id: str,
    body: ClientRequest,
    request: Request,
    account: Account = Depends(get_current_account),
    clients: ClientService = Depends(get_client_service),
):
    """Replace every editable field of a client"""
    with domain_errors("update client", get_request_id(request)):
        client = clients.update_client(account.id, client_id, **body.model_dump())
    return ClientResponse.model_validate(client)
