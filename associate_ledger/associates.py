"""
Associate Registry Module

Associates are the people or entities that lend to or borrow from the
company. They are soft-deactivated, never deleted, so loans can always
resolve the counterparty they reference.
"""

from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Any, List, Optional
import logging
import uuid
import re

from .exceptions import AssociateNotFoundError, ValidationError
from .storage import StorageInterface, StorageRecord

logger = logging.getLogger("associate_ledger.associates")

EMAIL_PATTERN = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'

# Labels offered by the loan form; any non-empty label is accepted
COMMON_RELATIONSHIPS = ("owner", "partner", "shareholder", "family", "director")

UPDATABLE_FIELDS = ("name", "relationship", "email", "phone", "address", "tax_id", "notes")


@dataclass
class Associate(StorageRecord):
    """Counterparty of associate loans"""
    name: str
    relationship: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    tax_id: Optional[str] = None
    notes: Optional[str] = None
    is_active: bool = True

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ValidationError("Associate name is required")
        if not self.relationship or not self.relationship.strip():
            raise ValidationError("Associate relationship is required")
        if self.email and not re.match(EMAIL_PATTERN, self.email):
            raise ValidationError("Invalid email format")


class AssociateManager:
    """
    Manages the associate registry
    """

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.table_name = "associates"

    def create_associate(
        self,
        name: str,
        relationship: str,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        address: Optional[str] = None,
        tax_id: Optional[str] = None,
        notes: Optional[str] = None
    ) -> Associate:
        """
        Register a new associate

        Args:
            name: Display name
            relationship: Relationship to the company, e.g. "shareholder"
            email: Optional contact email
            phone: Optional contact phone
            address: Optional postal address
            tax_id: Optional tax identifier
            notes: Free-form notes

        Returns:
            Created Associate object
        """
        now = datetime.now(timezone.utc)
        associate = Associate(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            name=name.strip() if name else name,
            relationship=relationship.strip() if relationship else relationship,
            email=email or None,
            phone=phone or None,
            address=address or None,
            tax_id=tax_id or None,
            notes=notes or None
        )

        self._save_associate(associate)
        logger.info("Associate %s created (%s)", associate.id, associate.relationship)
        return associate

    def get_associate(self, associate_id: str) -> Optional[Associate]:
        """Get associate by ID"""
        data = self.storage.load(self.table_name, associate_id)
        if data:
            return Associate.from_dict(data)
        return None

    def require_associate(self, associate_id: str) -> Associate:
        """Get associate by ID or raise"""
        associate = self.get_associate(associate_id)
        if not associate:
            raise AssociateNotFoundError(f"Associate {associate_id} not found")
        return associate

    def list_associates(self, active_only: bool = True) -> List[Associate]:
        """List associates ordered by name"""
        if active_only:
            records = self.storage.find(self.table_name, {"is_active": True})
        else:
            records = self.storage.load_all(self.table_name)
        associates = [Associate.from_dict(data) for data in records]
        associates.sort(key=lambda a: a.name.lower())
        return associates

    def update_associate(self, associate_id: str, **changes: Any) -> Associate:
        """
        Update contact details of an associate

        Raises:
            AssociateNotFoundError: If the associate does not exist
            ValidationError: If an unknown field is given or the result is invalid
        """
        unknown = set(changes) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")

        associate = self.require_associate(associate_id)
        data = associate.to_dict()
        data.update(changes)
        data['updated_at'] = datetime.now(timezone.utc).isoformat()
        updated = Associate.from_dict(data)

        self._save_associate(updated)
        logger.info("Associate %s updated: %s", associate_id, ", ".join(sorted(changes)))
        return updated

    def deactivate_associate(self, associate_id: str) -> Associate:
        """Soft-deactivate; existing loans keep referencing the associate"""
        associate = self.require_associate(associate_id)
        if not associate.is_active:
            return associate

        associate.is_active = False
        associate.updated_at = datetime.now(timezone.utc)
        self._save_associate(associate)
        logger.info("Associate %s deactivated", associate_id)
        return associate

    def _save_associate(self, associate: Associate) -> None:
        self.storage.save(self.table_name, associate.id, associate.to_dict())
