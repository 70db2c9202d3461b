"""StoreCustomer aggregate — a buyer as seen by one vendor store.

Customers are scoped per store: the same phone number checking out from two
stores yields two records. Checkout upserts by ``(store_id, phone)``.
"""

from datetime import UTC, datetime

from protean.fields import DateTime, Identifier, Integer, String
from protean.utils.globals import current_domain

from commerce.domain import commerce


def normalize_phone(phone):
    return "".join(phone.split()) if phone else phone


@commerce.aggregate
class StoreCustomer:
    store_id = Identifier(required=True)
    first_name = String(required=True, max_length=100)
    last_name = String(max_length=100)
    email = String(max_length=254)
    phone = String(required=True, max_length=20)
    city = String(max_length=100)
    quarter = String(max_length=100)
    address = String(max_length=500)
    order_count = Integer(default=0)
    last_order_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def register(cls, store_id, first_name, phone, last_name=None, email=None, city=None, quarter=None, address=None):
        now = datetime.now(UTC)
        return cls(
            store_id=store_id,
            first_name=first_name,
            last_name=last_name,
            email=email,
            phone=normalize_phone(phone),
            city=city,
            quarter=quarter,
            address=address,
            order_count=0,
            created_at=now,
            updated_at=now,
        )

    def refresh_contact(self, first_name, last_name=None, email=None, city=None, quarter=None, address=None):
        """Overwrite contact details with the latest checkout form, keeping known values."""
        self.first_name = first_name
        self.last_name = last_name or self.last_name
        self.email = email or self.email
        self.city = city or self.city
        self.quarter = quarter or self.quarter
        self.address = address or self.address
        self.updated_at = datetime.now(UTC)

    def record_order(self, placed_at=None):
        self.order_count = (self.order_count or 0) + 1
        self.last_order_at = placed_at or datetime.now(UTC)
        self.updated_at = self.last_order_at


def upsert_store_customer(store_id, customer, delivery):
    """Find the store's customer by phone or register a new one; returns the aggregate (unsaved)."""
    repo = current_domain.repository_for(StoreCustomer)
    phone = normalize_phone(customer["phone"])
    existing = repo._dao.query.filter(store_id=str(store_id), phone=phone).all().items

    if existing:
        record = existing[0]
        record.refresh_contact(
            first_name=customer["first_name"],
            last_name=customer.get("last_name"),
            email=customer.get("email"),
            city=delivery.get("city"),
            quarter=delivery.get("quarter"),
            address=delivery.get("address"),
        )
        return record

    return StoreCustomer.register(
        store_id=store_id,
        first_name=customer["first_name"],
        phone=phone,
        last_name=customer.get("last_name"),
        email=customer.get("email"),
        city=delivery.get("city"),
        quarter=delivery.get("quarter"),
        address=delivery.get("address"),
    )
