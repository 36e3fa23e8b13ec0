"""Supplier domain service."""

from datetime import datetime, UTC
from typing import Any, Callable, Optional

from chaibook.config.logging import get_logger
from chaibook.database.base import Database
from chaibook.domain import cache as tags
from chaibook.domain.cache import QueryCache, cached, invalidate
from chaibook.domain.entities import StockItem, Supplier
from chaibook.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    supplier_not_found,
)

logger = get_logger(__name__)

CONTACT_FIELDS = ("contact_person", "phone", "email", "address", "notes")


def _clean(value: Optional[str]) -> Optional[str]:
    """Strip a contact field; blank means none."""
    if value is None:
        return None
    return value.strip() or None


def _check_email(email: Optional[str]) -> None:
    if email is not None and "@" not in email:
        raise ValidationError(f"Invalid email address '{email}'")


class SupplierService:
    """Register of the people and firms stock is bought from."""

    def __init__(
        self,
        db: Database,
        cache: Optional[QueryCache] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.db = db
        self.cache = cache
        self.clock = clock or (lambda: datetime.now(UTC))

    def add_supplier(
        self,
        name: str,
        contact_person: Optional[str] = None,
        phone: Optional[str] = None,
        email: Optional[str] = None,
        address: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> int:
        """Add an active supplier.

        Returns:
            Supplier ID

        Raises:
            ValidationError: If the name is blank or the email has no '@'
        """
        if not name or not name.strip():
            raise ValidationError("Supplier name cannot be empty")
        email = _clean(email)
        _check_email(email)

        supplier_id = self.db.create_supplier(
            name=name.strip(),
            contact_person=_clean(contact_person),
            phone=_clean(phone),
            email=email,
            address=_clean(address),
            notes=_clean(notes),
            created_at=self.clock(),
        )
        logger.info("supplier_added", supplier_id=supplier_id, name=name.strip())
        invalidate(self.cache, tags.SUPPLIER_TAGS)
        return supplier_id

    def get_supplier(self, supplier_id: int) -> Optional[Supplier]:
        return self.db.get_supplier(supplier_id)

    def require_supplier(self, supplier_id: int) -> Supplier:
        """Get supplier by ID or raise NotFoundError."""
        supplier = self.db.get_supplier(supplier_id)
        if supplier is None:
            raise NotFoundError(supplier_not_found(supplier_id))
        return supplier

    def list_suppliers(self, include_inactive: bool = True) -> list[Supplier]:
        """List suppliers ordered by name."""
        return cached(
            self.cache,
            (tags.SUPPLIERS, include_inactive),
            lambda: self.db.list_suppliers(include_inactive=include_inactive),
        )

    def update_supplier(self, supplier_id: int, **fields: Any) -> Supplier:
        """Update supplier details.

        Accepts name and the contact fields. An empty string clears a contact
        field.

        Raises:
            NotFoundError: If the supplier does not exist
            ValidationError: If a field is unknown, the name is blank or the
                email is invalid
        """
        unknown = set(fields) - {"name", *CONTACT_FIELDS}
        if unknown:
            raise ValidationError(f"Unknown supplier fields: {', '.join(sorted(unknown))}")
        supplier = self.require_supplier(supplier_id)

        changes: dict[str, Any] = {}
        if "name" in fields:
            name = fields["name"]
            if not name or not name.strip():
                raise ValidationError("Supplier name cannot be empty")
            changes["name"] = name.strip()
        for field in CONTACT_FIELDS:
            if field in fields:
                changes[field] = _clean(fields[field])
        _check_email(changes.get("email"))
        if not changes:
            return supplier

        self.db.update_supplier(supplier_id, updated_at=self.clock(), **changes)
        logger.info("supplier_updated", supplier_id=supplier_id, fields=sorted(changes))
        invalidate(self.cache, tags.SUPPLIER_TAGS)
        return self.require_supplier(supplier_id)

    def deactivate_supplier(self, supplier_id: int) -> None:
        """Hide a supplier from new stock links. Existing links are kept."""
        if not self.require_supplier(supplier_id).is_active:
            raise ConflictError(f"Supplier {supplier_id} is already inactive")
        self.db.update_supplier(supplier_id, updated_at=self.clock(), is_active=False)
        logger.info("supplier_deactivated", supplier_id=supplier_id)
        invalidate(self.cache, tags.SUPPLIER_TAGS)

    def reactivate_supplier(self, supplier_id: int) -> None:
        if self.require_supplier(supplier_id).is_active:
            raise ConflictError(f"Supplier {supplier_id} is already active")
        self.db.update_supplier(supplier_id, updated_at=self.clock(), is_active=True)
        logger.info("supplier_reactivated", supplier_id=supplier_id)
        invalidate(self.cache, tags.SUPPLIER_TAGS)

    def list_supplied_items(self, supplier_id: int) -> list[StockItem]:
        """Stock items linked to a supplier."""
        self.require_supplier(supplier_id)
        return self.db.list_stock(supplier_id=supplier_id)
