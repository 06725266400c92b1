from __future__ import annotations

import uuid

from ..codec import WIRE_COLUMNS
from ..extensions import db
from ..time_utils import to_utc_z


def _new_id() -> str:
    return str(uuid.uuid4())


class ProductRecord(db.Model):
    """
    Product row in the hosted catalog database.

    Column names are the wire names; `minimarket.codec` translates them to
    the camelCase keys the client sees. Prices are stored as NUMERIC(12, 2)
    and always handled as Decimal on the Python side.

    Stock here is authoritative. The in-process ProductCache is only a
    mirror kept in sync through the change feed.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("code", name="uq_products_code"),
        db.Index("ix_products_category", "category"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_new_id)

    code = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True, default="")
    category = db.Column(db.String(128), nullable=True, default="")
    brand = db.Column(db.String(128), nullable=True, default="")

    cost_price = db.Column(db.Numeric(12, 2), nullable=False)
    sale_price = db.Column(db.Numeric(12, 2), nullable=False)
    profit_percentage = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    current_stock = db.Column(db.Integer, nullable=False, default=0)
    min_stock = db.Column(db.Integer, nullable=False, default=0)
    max_stock = db.Column(db.Integer, nullable=False, default=0)

    expiration_date = db.Column(db.Date, nullable=True)
    image_url = db.Column(db.String(1024), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False)

    def to_row(self) -> dict:
        """Wire row: column name -> Python value."""
        return {column: getattr(self, column) for column in WIRE_COLUMNS}


class LocalBlob(db.Model):
    """Key/value text blobs for the locally persisted state subset."""
    __bind_key__ = "local"
    __tablename__ = "local_blobs"

    key = db.Column(db.String(128), primary_key=True)
    value = db.Column(db.Text, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False)


class AuditEvent(db.Model):
    """
    Append-only record of who did what.

    Rows are never updated or deleted. `old_value` / `new_value` hold JSON
    text snapshots when the action changed a record.
    """
    __tablename__ = "audit_events"
    __table_args__ = (
        db.Index("ix_audit_events_entity", "entity", "entity_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    user_id = db.Column(db.String(36), nullable=True, index=True)
    username = db.Column(db.String(64), nullable=True)

    action = db.Column(db.String(32), nullable=False)  # create, update, delete, login, logout, open, close, sale
    entity = db.Column(db.String(32), nullable=False)  # product, sale, user, cash
    entity_id = db.Column(db.String(64), nullable=True)

    details = db.Column(db.Text, nullable=False, default="")
    old_value = db.Column(db.Text, nullable=True)
    new_value = db.Column(db.Text, nullable=True)

    def to_dict(self):
        return {
            "id": self.id,
            "timestamp": to_utc_z(self.occurred_at),
            "userId": self.user_id,
            "username": self.username,
            "action": self.action,
            "entity": self.entity,
            "entityId": self.entity_id,
            "details": self.details,
            "oldValue": self.old_value,
            "newValue": self.new_value,
        }
