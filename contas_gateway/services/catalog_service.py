"""Vendors and payment cards referenced by bills and ledger entries"""

import logging
import uuid
from typing import Any, List

from sqlalchemy.orm import Session

from contas_gateway.domain.exceptions import CardNotFound, VendorNotFound
from contas_gateway.domain.models import Card, CardKind, Vendor
from contas_gateway.domain.money import parse_amount
from contas_gateway.infrastructure.database.repositories import CardRepository, VendorRepository
from contas_gateway.infrastructure.observability.logging import log_operation
from contas_gateway.services.transactions import run_in_transaction

logger = logging.getLogger(__name__)


class CatalogService:
    def __init__(self, db: Session):
        self.db = db
        self.vendors = VendorRepository(db)
        self.cards = CardRepository(db)

    def create_vendor(self, owner_id: str, name: str, category: str | None = None) -> Vendor:
        vendor = run_in_transaction(
            self.db, "create_vendor", lambda: self.vendors.create(owner_id, name, category or "General")
        )
        log_operation(logger, "vendor_created", owner_id, vendor_id=vendor.id)
        return vendor

    def list_vendors(self, owner_id: str, include_inactive: bool = False) -> List[Vendor]:
        return self.vendors.list(owner_id, include_inactive=include_inactive)

    def set_vendor_active(self, owner_id: str, vendor_id: uuid.UUID, active: bool) -> Vendor:
        """Existing bills keep referencing a deactivated vendor"""

        def work() -> Vendor:
            if not self.vendors.set_active(owner_id, vendor_id, active):
                raise VendorNotFound(f"Vendor {vendor_id} not found")
            return self.vendors.get(owner_id, vendor_id)

        vendor = run_in_transaction(self.db, "set_vendor_active", work)
        log_operation(logger, "vendor_activated" if active else "vendor_deactivated", owner_id, vendor_id=vendor_id)
        return vendor

    def create_card(
        self,
        owner_id: str,
        name: str,
        kind: CardKind,
        bank: str,
        credit_limit: Any = None,
        statement_day: int | None = None,
    ) -> Card:
        limit = parse_amount(credit_limit, allow_zero=True) if credit_limit is not None else None
        card = run_in_transaction(
            self.db,
            "create_card",
            lambda: self.cards.create(owner_id, name, kind, bank, credit_limit=limit, statement_day=statement_day),
        )
        log_operation(logger, "card_created", owner_id, card_id=card.id)
        return card

    def list_cards(self, owner_id: str, include_inactive: bool = False) -> List[Card]:
        return self.cards.list(owner_id, include_inactive=include_inactive)

    def set_card_active(self, owner_id: str, card_id: uuid.UUID, active: bool) -> Card:
        def work() -> Card:
            if not self.cards.set_active(owner_id, card_id, active):
                raise CardNotFound(f"Card {card_id} not found")
            return self.cards.get(owner_id, card_id)

        card = run_in_transaction(self.db, "set_card_active", work)
        log_operation(logger, "card_activated" if active else "card_deactivated", owner_id, card_id=card_id)
        return card
