"""Flattened record schemas, one per exported dataset.

Each model is the denormalized projection of one row: foreign keys are
plain integer ids, never nested objects.  Models ignore unknown fields so
archives written by a newer release still parse, and every column added
after the first release must default to ``None``.

Usage:
    from resto_snapshot.snapshot.records import OrderRecord

    record = OrderRecord.model_validate(row)
    record.model_dump(mode="json")   # archive form
    record.to_row()                  # insert parameters
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict


# ============================================================================
# Enumerated codes
# ============================================================================


class OrderStatus(str, Enum):
    NEW = "NEW"
    SERVING = "SERVING"
    PAID = "PAID"
    CANCELED = "CANCELED"


class OrderItemStatus(str, Enum):
    NEW = "NEW"
    SENT_TO_KITCHEN = "SENT_TO_KITCHEN"
    COOKING = "COOKING"
    DONE = "DONE"
    CANCELED = "CANCELED"


class TableStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    OCCUPIED = "OCCUPIED"
    RESERVED = "RESERVED"
    MERGED = "MERGED"


class MemberTier(str, Enum):
    BRONZE = "BRONZE"
    SILVER = "SILVER"
    GOLD = "GOLD"
    PLATINUM = "PLATINUM"


class NotificationType(str, Enum):
    ORDER = "ORDER"
    STOCK = "STOCK"
    PAYMENT = "PAYMENT"
    SYSTEM = "SYSTEM"
    OTHER = "OTHER"


class NotificationStatus(str, Enum):
    UNREAD = "UNREAD"
    READ = "READ"


class SettingValueType(str, Enum):
    STRING = "STRING"
    NUMBER = "NUMBER"
    BOOLEAN = "BOOLEAN"
    JSON = "JSON"


# ============================================================================
# Base record
# ============================================================================


class FlatRecord(BaseModel):
    """Base for flattened records.

    Only scalar fields are allowed.  ``to_row()`` returns the values as
    insert parameters (enum members reduced to their codes).
    """

    model_config = ConfigDict(extra="ignore")

    id: int

    def to_row(self) -> dict[str, Any]:
        """Return column -> value mapping suitable for a parameterized INSERT."""
        return {
            k: (v.value if isinstance(v, Enum) else v)
            for k, v in self.model_dump().items()
        }


# ============================================================================
# Settings & security
# ============================================================================


class SystemSettingRecord(FlatRecord):
    setting_group: str | None = None
    setting_key: str
    setting_value: str | None = None
    value_type: SettingValueType | None = None
    description: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    created_by: int | None = None
    updated_by: int | None = None


class RoleRecord(FlatRecord):
    code: str
    name: str | None = None
    description: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class PermissionRecord(FlatRecord):
    code: str
    name: str | None = None
    description: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class RolePermissionRecord(FlatRecord):
    role_id: int
    permission_id: int


class UserRecord(FlatRecord):
    username: str
    password: str | None = None  # stored hash
    full_name: str | None = None
    status: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class UserRoleRecord(FlatRecord):
    user_id: int
    role_id: int


# ============================================================================
# Loyalty
# ============================================================================


class MemberRecord(FlatRecord):
    name: str | None = None
    phone: str | None = None
    email: str | None = None
    active: bool | None = None
    birthday: date | None = None
    tier: MemberTier | None = None
    total_point: int | None = None
    used_point: int | None = None
    lifetime_point: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class MemberPointHistoryRecord(FlatRecord):
    member_id: int
    change_amount: int | None = None
    balance_after: int | None = None
    type: str | None = None
    description: str | None = None
    order_id: int | None = None
    created_at: datetime | None = None


# ============================================================================
# Floor & menu
# ============================================================================


class RestaurantTableRecord(FlatRecord):
    name: str
    capacity: int | None = None
    status: TableStatus | None = None
    merged_root_id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class DishRecord(FlatRecord):
    name: str
    category_id: int | None = None
    price: Decimal | None = None
    image_url: str | None = None
    status: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


# ============================================================================
# Orders, invoices, payments
# ============================================================================


class OrderRecord(FlatRecord):
    order_code: str | None = None
    total_price: Decimal | None = None
    status: OrderStatus
    note: str | None = None
    created_by: int | None = None
    table_id: int | None = None
    member_id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class OrderItemRecord(FlatRecord):
    order_id: int
    dish_id: int
    quantity: int | None = None
    snapshot_price: Decimal | None = None
    status: OrderItemStatus | None = None
    note: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class InvoiceRecord(FlatRecord):
    order_id: int
    total_amount: Decimal | None = None
    payment_method: str | None = None
    paid_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    discount_amount: Decimal | None = None
    voucher_code: str | None = None
    loyalty_earned_point: int | None = None
    original_total_amount: Decimal | None = None
    voucher_discount_amount: Decimal | None = None
    default_discount_amount: Decimal | None = None
    amount_before_vat: Decimal | None = None
    vat_rate: Decimal | None = None
    vat_amount: Decimal | None = None
    customer_paid: Decimal | None = None
    change_amount: Decimal | None = None


class InvoiceItemRecord(FlatRecord):
    invoice_id: int
    dish_id: int | None = None  # plain value; the line keeps its own name/price
    dish_name: str | None = None
    dish_price: Decimal | None = None
    quantity: int | None = None
    subtotal: Decimal | None = None
    created_at: datetime | None = None


class PaymentRecord(FlatRecord):
    order_id: int
    invoice_id: int
    amount: Decimal | None = None
    method: str | None = None
    note: str | None = None
    paid_at: datetime | None = None
    created_by: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    customer_paid: Decimal | None = None
    change_amount: Decimal | None = None


# ============================================================================
# Notifications & audit
# ============================================================================


class NotificationRecord(FlatRecord):
    title: str | None = None
    message: str | None = None
    type: NotificationType | None = None
    link: str | None = None
    created_at: datetime | None = None


class NotificationUserStatusRecord(FlatRecord):
    notification_id: int
    user_id: int
    status: NotificationStatus | None = None
    read_at: datetime | None = None
    created_at: datetime | None = None


class AuditLogRecord(FlatRecord):
    action: str
    entity: str | None = None
    entity_id: int | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    before_data: str | None = None
    after_data: str | None = None
    user_id: int | None = None
    created_at: datetime | None = None
