"""Client management"""

import logging
from typing import Dict, List, Optional

from loan_tracker.domain.exceptions import ValidationError
from loan_tracker.domain.models import Client
from loan_tracker.infrastructure.store import HierarchyStore


def _client_fields(
    name: Optional[str],
    document: Optional[str],
    phone: Optional[str],
    address: Optional[str],
    notes: Optional[str],
) -> Dict[str, str]:
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required")
    return {
        "name": name,
        "document": (document or "").strip(),
        "phone": (phone or "").strip(),
        "address": (address or "").strip(),
        "notes": (notes or "").strip(),
    }


class ClientService:
    """Create, edit and search an account's clients"""

    def __init__(self, store: HierarchyStore):
        self.store = store

    def list_clients(self, owner_id: str, name_filter: Optional[str] = None) -> List[Client]:
        return self.store.list_clients(owner_id, name_filter)

    def create_client(
        self,
        owner_id: str,
        name: str,
        document: str = "",
        phone: str = "",
        address: str = "",
        notes: str = "",
    ) -> Client:
        client = self.store.create_client(owner_id, _client_fields(name, document, phone, address, notes))
        logging.info("Client created", extra={"owner_id": owner_id, "client_id": client.id})
        return client

    def update_client(
        self,
        owner_id: str,
        client_id: str,
        name: str,
        document: str = "",
        phone: str = "",
        address: str = "",
        notes: str = "",
    ) -> Client:
        """Replace every editable field of a client"""
        client = self.store.update_client(
            owner_id, client_id, _client_fields(name, document, phone, address, notes)
        )
        logging.info("Client updated", extra={"owner_id": owner_id, "client_id": client_id})
        return client
