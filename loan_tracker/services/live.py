"""Session-scoped live cache fed by store subscriptions"""

import logging
from datetime import date
from typing import Callable, Dict, List, Optional, Tuple

from loan_tracker.domain.aggregation import build_dashboard
from loan_tracker.domain.exceptions import StoreError
from loan_tracker.domain.models import Client, DashboardSnapshot, Hierarchy, Loan, Payment, loan_key
from loan_tracker.infrastructure.notifications import Subscription
from loan_tracker.infrastructure.store import HierarchyStore


class SessionCache:
    """
    Local mirror of the collections a session is watching.

    Every upsert replaces a whole collection with the snapshot it is given;
    entries are never patched one by one.
    """

    def __init__(self):
        self.clients: List[Client] = []
        self.loans: Dict[str, List[Loan]] = {}
        self.payments: Dict[str, List[Payment]] = {}

    def upsert_clients(self, clients: List[Client]) -> None:
        self.clients = list(clients)

    def upsert_loans(self, client_id: str, loans: List[Loan]) -> None:
        self.loans[client_id] = list(loans)

    def upsert_payments(self, key: str, payments: List[Payment]) -> None:
        self.payments[key] = list(payments)

    def filter_clients(self, text: str = "") -> List[Client]:
        """Clients whose name contains text, case-insensitively"""
        needle = (text or "").strip().lower()
        return [c for c in self.clients if needle in c.name.lower()]

    def hierarchy(self) -> Hierarchy:
        return Hierarchy(
            clients=list(self.clients),
            loans={k: list(v) for k, v in self.loans.items()},
            payments={k: list(v) for k, v in self.payments.items()},
        )


class LiveSession:
    """
    One signed-in account's view: its cache, its subscriptions and the
    dashboard derived from them.

    Runs cooperatively: call pump() to take in whatever snapshots have
    arrived. Any snapshot that changes the cache triggers a dashboard
    refresh. Failures are kept as a session-local message; the cache keeps
    its last good state.
    """

    def __init__(
        self,
        store: HierarchyStore,
        owner_id: str,
        on_dashboard: Optional[Callable[[DashboardSnapshot], None]] = None,
        today_provider: Callable[[], date] = date.today,
    ):
        self.store = store
        self.owner_id = owner_id
        self.cache = SessionCache()
        self.dashboard: Optional[DashboardSnapshot] = None
        self.last_error: Optional[str] = None
        self._on_dashboard = on_dashboard
        self._today = today_provider
        self._clients_sub: Optional[Subscription] = None
        self._loans_sub: Optional[Tuple[str, Subscription]] = None
        self._payments_sub: Optional[Tuple[str, Subscription]] = None

    def start(self) -> None:
        if self._clients_sub is None:
            self._clients_sub = self.store.subscribe_clients(self.owner_id)
        self.pump()

    def select_client(self, client_id: str) -> None:
        """Watch the loans of client_id, replacing any previous loan subscription"""
        if self._loans_sub is not None:
            self._loans_sub[1].cancel()
        self._loans_sub = (client_id, self.store.subscribe_loans(self.owner_id, client_id))
        self.pump()

    def select_loan(self, client_id: str, loan_id: str) -> None:
        """Watch the payments of one loan, replacing any previous payment subscription"""
        if self._payments_sub is not None:
            self._payments_sub[1].cancel()
        key = loan_key(client_id, loan_id)
        self._payments_sub = (key, self.store.subscribe_payments(self.owner_id, client_id, loan_id))
        self.pump()

    def pump(self) -> bool:
        """Apply pending snapshots; returns True if anything changed.

        A snapshot failure is kept in last_error even when other collections
        changed in the same pump; only a clean pump clears it.
        """
        changed = False
        failed = False
        try:
            if self._clients_sub is not None:
                clients = self._clients_sub.poll()
                if clients is not None:
                    self.cache.upsert_clients(clients)
                    changed = True

            if self._loans_sub is not None:
                client_id, subscription = self._loans_sub
                loans = subscription.poll()
                if loans is not None:
                    self.cache.upsert_loans(client_id, loans)
                    changed = True

            if self._payments_sub is not None:
                key, subscription = self._payments_sub
                payments = subscription.poll()
                if payments is not None:
                    self.cache.upsert_payments(key, payments)
                    changed = True
        except StoreError as e:
            self._fail(f"Failed to load data: {e}")
            failed = True

        if changed:
            self._refresh(clear_error=not failed)
        return changed

    def refresh_dashboard(self) -> Optional[DashboardSnapshot]:
        """Reload the whole account into the cache and recompute the dashboard"""
        return self._refresh(clear_error=True)

    def _refresh(self, clear_error: bool) -> Optional[DashboardSnapshot]:
        try:
            hierarchy = self.store.load_hierarchy(self.owner_id)
        except StoreError as e:
            self._fail(f"Failed to refresh dashboard: {e}")
            return self.dashboard

        # Loans and payments of every client, not only the selected ones
        self.cache.upsert_clients(hierarchy.clients)
        for client_id, loans in hierarchy.loans.items():
            self.cache.upsert_loans(client_id, loans)
        for key, payments in hierarchy.payments.items():
            self.cache.upsert_payments(key, payments)

        self.dashboard = build_dashboard(self.cache.hierarchy(), self._today())
        if clear_error:
            self.last_error = None
        if self._on_dashboard is not None:
            self._on_dashboard(self.dashboard)
        return self.dashboard

    def _fail(self, message: str) -> None:
        logging.warning(message, extra={"owner_id": self.owner_id})
        self.last_error = message

    def close(self) -> None:
        for subscription in (
            self._clients_sub,
            self._loans_sub[1] if self._loans_sub else None,
            self._payments_sub[1] if self._payments_sub else None,
        ):
            if subscription is not None:
                subscription.cancel()
        self._clients_sub = self._loans_sub = self._payments_sub = None
