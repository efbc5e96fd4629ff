"""Labour master-data service."""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from labour_ledger.ledger.errors import ValidationError
from labour_ledger.ledger.store import LedgerStore
from labour_ledger.ledger.validation import validate_balance
from labour_ledger.models import Labour

logger = logging.getLogger(__name__)


class LabourService:
    """Create and retire labours.

    The opening balance is captured at creation and seeds the ledger. The
    mirror starts equal to it.
    """

    def __init__(self, session: Session, store: LedgerStore | None = None):
        self.session = session
        self.store = store or LedgerStore(session)

    def create_labour(
        self,
        full_name: str,
        opening_balance: Any = None,
        phone: str | None = None,
        address: str | None = None,
        emergency_contact: str | None = None,
    ) -> Labour:
        """Create an active labour.

        Raises:
            ValidationError: missing or non-text name, or a bad opening balance
        """
        errors: list[str] = []
        if full_name is None or (isinstance(full_name, str) and not full_name.strip()):
            errors.append("full_name is required")
        elif not isinstance(full_name, str):
            errors.append("full_name must be text")
        try:
            balance = validate_balance(opening_balance, "opening_balance")
        except ValidationError as exc:
            errors.extend(exc.errors)
        if errors:
            raise ValidationError(errors)

        labour = Labour(
            labour_id=uuid4(),
            full_name=full_name.strip(),
            phone=phone,
            address=address,
            emergency_contact=emergency_contact,
            is_active=True,
            opening_balance=balance,
            balance=balance,
        )
        self.session.add(labour)
        self.session.flush()
        logger.info(
            "Created labour %s (%s) with opening balance %s",
            labour.labour_id,
            labour.full_name,
            balance,
        )
        return labour

    def deactivate_labour(self, labour_id: UUID) -> int:
        """Deactivate a labour and purge its ledger.

        The mirror returns to the opening balance. Returns the number of
        ledger events removed.
        """
        self.store.lock_labour(labour_id)
        removed = self.store.delete_all_events(labour_id)
        labour = self.store.require_labour(labour_id)
        labour.is_active = False
        labour.balance = labour.opening_balance
        self.session.flush()
        logger.info("Deactivated labour %s, removed %d ledger events", labour_id, removed)
        return removed
