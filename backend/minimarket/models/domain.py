"""
In-memory domain records.

These are the shapes held by the state container and the product cache.
Each record serializes to the camelCase JSON the point-of-sale client and the
local blob store use (`to_dict` / `from_dict`). Records are frozen; every
change produces a new value through `dataclasses.replace`.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping, Optional

from minimarket.codec import WIRE_COLUMNS, from_wire_keys, to_wire_keys
from minimarket.time_utils import as_naive_utc, parse_iso_date, parse_iso_datetime, to_utc_z
from minimarket.validation import money


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    TRANSFER = "transfer"
    YAPE = "yape"
    PLIN = "plin"
    OTHER = "other"


class SaleStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class MovementType(str, Enum):
    ENTRY = "entry"
    EXIT = "exit"
    ADJUSTMENT = "adjustment"


class SessionStatus(str, Enum):
    ACTIVE = "active"
    CLOSED = "closed"


class AlertType(str, Enum):
    EXPIRATION = "expiration"
    LOW_STOCK = "low_stock"
    OVER_STOCK = "over_stock"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Role(str, Enum):
    ADMIN = "admin"
    SUPERVISOR = "supervisor"
    CASHIER = "cashier"


def _money_out(value: Optional[Decimal]) -> Optional[float]:
    return float(value) if value is not None else None


def compute_profit_percentage(cost_price: Decimal, sale_price: Decimal) -> Decimal:
    """Markup over cost, in percent. Zero when either price is missing."""
    if cost_price <= 0 or sale_price <= 0:
        return Decimal("0.00")
    return money((sale_price - cost_price) / cost_price * 100)


# -- Catalog --

@dataclass(frozen=True)
class Product:
    id: str
    code: str
    name: str
    description: str
    category: str
    brand: str
    cost_price: Decimal
    sale_price: Decimal
    profit_percentage: Decimal
    current_stock: int
    min_stock: int
    max_stock: int
    expiration_date: Optional[date]
    image_url: Optional[str]
    created_at: datetime
    updated_at: datetime

    def with_stock(self, current_stock: int, at: datetime) -> "Product":
        return replace(self, current_stock=current_stock, updated_at=at)

    def to_dict(self) -> dict:
        row = product_to_row(self)
        row.update(
            cost_price=_money_out(self.cost_price),
            sale_price=_money_out(self.sale_price),
            profit_percentage=_money_out(self.profit_percentage),
            expiration_date=self.expiration_date.isoformat() if self.expiration_date else None,
            created_at=to_utc_z(self.created_at),
            updated_at=to_utc_z(self.updated_at),
        )
        return from_wire_keys(row)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Product":
        row = to_wire_keys(data)
        expiration = row.get("expiration_date")
        row.update(
            expiration_date=parse_iso_date(expiration) if isinstance(expiration, str) else expiration,
            created_at=parse_iso_datetime(row.get("created_at")),
            updated_at=parse_iso_datetime(row.get("updated_at")),
        )
        return product_from_row(row)


def product_to_row(product: Product) -> dict:
    """Domain product -> wire row (snake_case column names, Python values)."""
    return {column: getattr(product, column) for column in WIRE_COLUMNS}


def product_from_row(row: Mapping[str, Any]) -> Product:
    """Wire row -> domain product. Inverse of `product_to_row`."""
    expiration = row.get("expiration_date")
    if isinstance(expiration, datetime):
        expiration = expiration.date()
    return Product(
        id=str(row["id"]),
        code=row["code"],
        name=row["name"],
        description=row.get("description") or "",
        category=row.get("category") or "",
        brand=row.get("brand") or "",
        cost_price=money(row["cost_price"]),
        sale_price=money(row["sale_price"]),
        profit_percentage=money(row.get("profit_percentage") or 0),
        current_stock=int(row["current_stock"]),
        min_stock=int(row.get("min_stock") or 0),
        max_stock=int(row.get("max_stock") or 0),
        expiration_date=expiration,
        image_url=row.get("image_url") or None,
        created_at=as_naive_utc(row["created_at"]),
        updated_at=as_naive_utc(row["updated_at"]),
    )


# -- Sales --

@dataclass(frozen=True)
class SaleItem:
    """Price and name captured at sale time; never follows later catalog edits."""
    id: str
    product_id: str
    product_name: str
    unit_price: Decimal
    quantity: int

    @property
    def total(self) -> Decimal:
        return money(self.unit_price * self.quantity)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "productId": self.product_id,
            "productName": self.product_name,
            "quantity": self.quantity,
            "unitPrice": _money_out(self.unit_price),
            "total": _money_out(self.total),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SaleItem":
        # Older stored carts used "name"/"price" instead of the item keys
        name = data.get("productName", data.get("name")) or ""
        price = data.get("unitPrice", data.get("price"))
        return cls(
            id=str(data["id"]),
            product_id=str(data["productId"]),
            product_name=name,
            unit_price=money(price or 0),
            quantity=int(data["quantity"]),
        )


@dataclass(frozen=True)
class Sale:
    id: str
    sale_number: str
    items: tuple[SaleItem, ...]
    payment_method: PaymentMethod
    created_at: datetime
    created_by: str
    operation_number: Optional[str] = None
    customer_name: Optional[str] = None
    customer_document: Optional[str] = None
    status: SaleStatus = SaleStatus.COMPLETED
    tax: Decimal = Decimal("0.00")

    @property
    def subtotal(self) -> Decimal:
        return money(sum((item.total for item in self.items), Decimal("0")))

    @property
    def total(self) -> Decimal:
        return money(self.subtotal + self.tax)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "saleNumber": self.sale_number,
            "items": [item.to_dict() for item in self.items],
            "subtotal": _money_out(self.subtotal),
            "tax": _money_out(self.tax),
            "total": _money_out(self.total),
            "paymentMethod": self.payment_method.value,
            "operationNumber": self.operation_number,
            "customerName": self.customer_name,
            "customerDocument": self.customer_document,
            "status": self.status.value,
            "createdAt": to_utc_z(self.created_at),
            "createdBy": self.created_by,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Sale":
        return cls(
            id=str(data["id"]),
            sale_number=data["saleNumber"],
            items=tuple(SaleItem.from_dict(item) for item in data.get("items", [])),
            payment_method=PaymentMethod(data["paymentMethod"]),
            created_at=parse_iso_datetime(data["createdAt"]),
            created_by=str(data.get("createdBy") or ""),
            operation_number=data.get("operationNumber") or None,
            customer_name=data.get("customerName") or None,
            customer_document=data.get("customerDocument") or None,
            status=SaleStatus(data.get("status", SaleStatus.COMPLETED.value)),
            tax=money(data.get("tax") or 0),
        )


@dataclass(frozen=True)
class KardexEntry:
    """One stock movement with its cost basis. Append-only."""
    id: str
    product_id: str
    type: MovementType
    quantity: int
    unit_cost: Decimal
    total_cost: Decimal
    reason: str
    created_at: datetime
    created_by: str
    reference: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "productId": self.product_id,
            "type": self.type.value,
            "quantity": self.quantity,
            "unitCost": _money_out(self.unit_cost),
            "totalCost": _money_out(self.total_cost),
            "reason": self.reason,
            "reference": self.reference,
            "createdAt": to_utc_z(self.created_at),
            "createdBy": self.created_by,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "KardexEntry":
        return cls(
            id=str(data["id"]),
            product_id=str(data["productId"]),
            type=MovementType(data["type"]),
            quantity=int(data["quantity"]),
            unit_cost=money(data["unitCost"]),
            total_cost=money(data["totalCost"]),
            reason=data.get("reason") or "",
            created_at=parse_iso_datetime(data["createdAt"]),
            created_by=str(data.get("createdBy") or ""),
            reference=data.get("reference") or None,
        )


# -- Cash drawer --

@dataclass(frozen=True)
class CashSession:
    """
    One user's register window.

    `current_amount` is carried along but never authoritative: expected cash
    is always recomputed from the sales inside the window.
    """
    id: str
    user_id: str
    start_amount: Decimal
    current_amount: Decimal
    start_time: datetime
    total_sales: Decimal = Decimal("0.00")
    end_time: Optional[datetime] = None
    status: SessionStatus = SessionStatus.ACTIVE

    @property
    def is_active(self) -> bool:
        return self.status is SessionStatus.ACTIVE

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "startAmount": _money_out(self.start_amount),
            "currentAmount": _money_out(self.current_amount),
            "totalSales": _money_out(self.total_sales),
            "startTime": to_utc_z(self.start_time),
            "endTime": to_utc_z(self.end_time),
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CashSession":
        return cls(
            id=str(data["id"]),
            user_id=str(data["userId"]),
            start_amount=money(data["startAmount"]),
            current_amount=money(data.get("currentAmount", data["startAmount"])),
            start_time=parse_iso_datetime(data["startTime"]),
            total_sales=money(data.get("totalSales") or 0),
            end_time=parse_iso_datetime(data.get("endTime")),
            status=SessionStatus(data.get("status", SessionStatus.ACTIVE.value)),
        )


# -- Alerts and users --

@dataclass(frozen=True)
class Alert:
    id: str
    type: AlertType
    product_id: str
    product_name: str
    message: str
    severity: Severity
    created_at: datetime
    is_read: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type.value,
            "productId": self.product_id,
            "productName": self.product_name,
            "message": self.message,
            "severity": self.severity.value,
            "isRead": self.is_read,
            "createdAt": to_utc_z(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Alert":
        return cls(
            id=str(data["id"]),
            type=AlertType(data["type"]),
            product_id=str(data.get("productId") or ""),
            product_name=data.get("productName") or "",
            message=data.get("message") or "",
            severity=Severity(data.get("severity", Severity.LOW.value)),
            created_at=parse_iso_datetime(data["createdAt"]),
            is_read=bool(data.get("isRead", False)),
        )


@dataclass(frozen=True)
class User:
    id: str
    username: str
    email: str
    role: Role
    created_at: datetime
    is_active: bool = True

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "role": self.role.value,
            "isActive": self.is_active,
            "createdAt": to_utc_z(self.created_at),
        }


@dataclass(frozen=True)
class CartWarning:
    """User-facing notice from a cart operation that was refused."""
    message: str
    product_id: Optional[str] = None
    details: dict = field(default_factory=dict)
