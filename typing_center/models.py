"""
Typing Center Management System – Domain Models

Entities:
- User (login accounts, admin/user roles)
- Client (companies and individuals, soft-deleted only)
- Quotation -> Invoice -> Payment (billing lifecycle)
- Application (visa/license case tracked through a fixed step catalog)
- AuditLog (append-only history of invoice/quotation changes)
- UsefulLink (shared bookmarks for government portals)

IMPORTANT:
- Money columns are Numeric(12, 2) and handled as Decimal in Python.
- Derived invoice fields (amount_paid, balance, payment_status) are only
  written by typing_center.ledger.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP

from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash

from .extensions import db


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------
def _to_decimal(value) -> Decimal:
    """Convert Numeric/None to Decimal safely."""
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value))


def _money(x: Decimal) -> Decimal:
    return x.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _amount(value) -> float:
    """JSON rendering of a money column."""
    return float(_money(_to_decimal(value)))


def _iso(value) -> str | None:
    if value is None:
        return None
    return value.isoformat()


# ---------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------
class User(UserMixin, db.Model):
    """System login user."""

    __tablename__ = "users"

    ROLES = ("admin", "user")

    id = db.Column(db.Integer, primary_key=True)

    username = db.Column(db.String(80), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)

    full_name = db.Column(db.String(150), nullable=False)
    email = db.Column(db.String(255), nullable=True, index=True)
    phone = db.Column(db.String(50), nullable=True)

    role = db.Column(db.String(20), nullable=False, default="user", index=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    last_login = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    def set_password(self, password: str):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def audit_name(self) -> str:
        return f"{self.full_name} ({self.username})"

    def to_dict(self):
        return {
            "id": self.id,
            "username": self.username,
            "full_name": self.full_name,
            "email": self.email,
            "phone": self.phone,
            "role": self.role,
            "is_active": self.is_active,
            "last_login": _iso(self.last_login),
            "created_at": _iso(self.created_at),
        }

    def __repr__(self):
        return f"<User {self.username}>"


# ---------------------------------------------------------------------
# Clients
# ---------------------------------------------------------------------
class Client(db.Model):
    """
    Company or individual customer.

    Never hard-deleted: delete sets deleted_at and listings filter it out,
    so quotations/invoices created earlier can still reference the row.
    """

    __tablename__ = "clients"

    TYPES = ("company", "individual")

    id = db.Column(db.Integer, primary_key=True)

    client_code = db.Column(db.String(20), unique=True, nullable=False, index=True)
    client_type = db.Column(db.String(20), nullable=False, default="company", index=True)

    company_name = db.Column(db.String(255), nullable=True, index=True)
    contact_person = db.Column(db.String(255), nullable=True, index=True)
    email = db.Column(db.String(255), nullable=True, index=True)
    phone = db.Column(db.String(50), nullable=True, index=True)
    trade_license_number = db.Column(db.String(100), nullable=True, index=True)

    emirate = db.Column(db.String(50), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    is_new_client = db.Column(db.Boolean, default=False, nullable=False)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    deleted_at = db.Column(db.DateTime, nullable=True, index=True)

    @property
    def display_name(self) -> str | None:
        if self.client_type == "individual":
            return self.contact_person or self.company_name
        return self.company_name or self.contact_person

    def to_dict(self):
        return {
            "id": self.id,
            "client_code": self.client_code,
            "client_type": self.client_type,
            "company_name": self.company_name,
            "contact_person": self.contact_person,
            "display_name": self.display_name,
            "email": self.email,
            "phone": self.phone,
            "trade_license_number": self.trade_license_number,
            "emirate": self.emirate,
            "address": self.address,
            "is_new_client": self.is_new_client,
            "notes": self.notes,
            "created_at": _iso(self.created_at),
            "deleted_at": _iso(self.deleted_at),
        }

    def __repr__(self):
        return f"<Client {self.client_code}>"


# ---------------------------------------------------------------------
# Billing
# ---------------------------------------------------------------------
class Quotation(db.Model):
    """
    Non-binding price estimate.

    Once converted_to_invoice is set the quotation is immutable and
    invoice_id stays attached permanently.
    """

    __tablename__ = "quotations"

    STATUSES = ("draft", "sent", "accepted", "rejected")

    id = db.Column(db.Integer, primary_key=True)

    quotation_number = db.Column(db.String(20), unique=True, nullable=False, index=True)

    client_id = db.Column(
        db.Integer,
        db.ForeignKey("clients.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    client_name = db.Column(db.String(255), nullable=True)
    person_name = db.Column(db.String(255), nullable=True)

    service_description = db.Column(db.Text, nullable=True)
    service_category = db.Column(db.String(100), nullable=True)
    license_type = db.Column(db.String(100), nullable=True)
    activity = db.Column(db.String(255), nullable=True)

    date = db.Column(db.Date, nullable=False, default=date.today)

    items = db.Column(db.JSON, nullable=False, default=list)
    include_vat = db.Column(db.Boolean, default=False, nullable=False)
    subtotal = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    vat_amount = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    total = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal("0.00"))

    status = db.Column(db.String(20), nullable=False, default="draft", index=True)
    notes = db.Column(db.Text, nullable=True)

    converted_to_invoice = db.Column(db.Boolean, default=False, nullable=False, index=True)
    # No FK: invoices.quotation_id already points the other way.
    invoice_id = db.Column(db.Integer, nullable=True, index=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    client = db.relationship("Client", foreign_keys=[client_id])
    invoice = db.relationship(
        "Invoice",
        primaryjoin="foreign(Quotation.invoice_id) == Invoice.id",
        uselist=False,
        viewonly=True,
    )

    def to_dict(self):
        return {
            "id": self.id,
            "quotation_number": self.quotation_number,
            "client_id": self.client_id,
            "client_name": self.client_name,
            "person_name": self.person_name,
            "service_description": self.service_description,
            "service_category": self.service_category,
            "license_type": self.license_type,
            "activity": self.activity,
            "date": _iso(self.date),
            "items": list(self.items or []),
            "include_vat": self.include_vat,
            "subtotal": _amount(self.subtotal),
            "vat_amount": _amount(self.vat_amount),
            "total": _amount(self.total),
            "status": self.status,
            "notes": self.notes,
            "converted_to_invoice": self.converted_to_invoice,
            "invoice_id": self.invoice_id,
            "invoice_number": self.invoice.invoice_number if self.invoice else None,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Quotation {self.quotation_number}>"


class Invoice(db.Model):
    """Billable document with its own payment lifecycle."""

    __tablename__ = "invoices"

    PAYMENT_STATUSES = ("unpaid", "partial", "paid")

    id = db.Column(db.Integer, primary_key=True)

    invoice_number = db.Column(db.String(20), unique=True, nullable=False, index=True)

    quotation_id = db.Column(
        db.Integer,
        db.ForeignKey("quotations.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    client_id = db.Column(
        db.Integer,
        db.ForeignKey("clients.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    client_name = db.Column(db.String(255), nullable=True)
    person_name = db.Column(db.String(255), nullable=True)

    service_type = db.Column(db.String(100), nullable=True)
    license_type = db.Column(db.String(100), nullable=True)
    activity = db.Column(db.String(255), nullable=True)

    date = db.Column(db.Date, nullable=False, default=date.today, index=True)

    items = db.Column(db.JSON, nullable=False, default=list)
    include_vat = db.Column(db.Boolean, default=False, nullable=False)
    subtotal = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    vat_amount = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    total = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal("0.00"))

    payment_status = db.Column(db.String(20), nullable=False, default="unpaid", index=True)
    amount_paid = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    balance = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal("0.00"))

    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    quotation = db.relationship("Quotation", foreign_keys=[quotation_id])
    client = db.relationship("Client", foreign_keys=[client_id])

    payments = db.relationship(
        "Payment",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="Payment.id",
    )

    def to_dict(self, include_payments: bool = True):
        data = {
            "id": self.id,
            "invoice_number": self.invoice_number,
            "quotation_id": self.quotation_id,
            "client_id": self.client_id,
            "client_name": self.client_name,
            "person_name": self.person_name,
            "service_type": self.service_type,
            "license_type": self.license_type,
            "activity": self.activity,
            "date": _iso(self.date),
            "items": list(self.items or []),
            "include_vat": self.include_vat,
            "subtotal": _amount(self.subtotal),
            "vat_amount": _amount(self.vat_amount),
            "total": _amount(self.total),
            "payment_status": self.payment_status,
            "amount_paid": _amount(self.amount_paid),
            "balance": _amount(self.balance),
            "notes": self.notes,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
        if include_payments:
            data["payments"] = [p.to_summary() for p in self.payments]
        return data

    def __repr__(self):
        return f"<Invoice {self.invoice_number}>"


class Payment(db.Model):
    """Money received against an invoice. Client info is denormalized for reporting."""

    __tablename__ = "payments"

    METHODS = ("cash", "bank_transfer", "card", "cheque")

    id = db.Column(db.Integer, primary_key=True)

    invoice_id = db.Column(
        db.Integer,
        db.ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    invoice_number = db.Column(db.String(20), nullable=False, index=True)

    client_id = db.Column(db.Integer, nullable=True, index=True)
    client_name = db.Column(db.String(255), nullable=True)

    amount = db.Column(db.Numeric(12, 2), nullable=False)
    method = db.Column(db.String(20), nullable=False, index=True)
    payment_date = db.Column(db.Date, nullable=False, default=date.today, index=True)
    reference = db.Column(db.String(255), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    recorded_by = db.Column(db.String(150), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    invoice = db.relationship("Invoice", back_populates="payments")

    def to_summary(self):
        """Shape embedded in the invoice payload."""
        return {
            "id": self.id,
            "amount": _amount(self.amount),
            "method": self.method,
            "date": _iso(self.payment_date),
            "reference": self.reference,
        }

    def to_dict(self):
        return {
            "id": self.id,
            "invoice_id": self.invoice_id,
            "invoice_number": self.invoice_number,
            "client_id": self.client_id,
            "client_name": self.client_name,
            "amount": _amount(self.amount),
            "method": self.method,
            "payment_date": _iso(self.payment_date),
            "reference": self.reference,
            "notes": self.notes,
            "recorded_by": self.recorded_by,
            "created_at": _iso(self.created_at),
        }


# ---------------------------------------------------------------------
# Applications
# ---------------------------------------------------------------------
class Application(db.Model):
    """
    Visa/license processing case.

    steps_completed is the source of truth for progress; current_step is a
    denormalized copy maintained by typing_center.workflow.
    """

    __tablename__ = "applications"

    STATUSES = ("in_progress", "completed")

    id = db.Column(db.Integer, primary_key=True)

    application_number = db.Column(db.String(20), unique=True, nullable=False, index=True)

    client_id = db.Column(
        db.Integer,
        db.ForeignKey("clients.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    client_name = db.Column(db.String(255), nullable=False, default="Walk-in Customer")
    person_name = db.Column(db.String(255), nullable=False, default="Not Specified")
    pre_approval_mb_number = db.Column(db.String(100), nullable=True)

    invoice_id = db.Column(
        db.Integer,
        db.ForeignKey("invoices.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    application_type = db.Column(db.String(50), nullable=False, index=True)
    application_type_description = db.Column(db.String(255), nullable=True)
    emirate = db.Column(db.String(50), nullable=True)

    current_step = db.Column(db.String(80), nullable=True)
    steps_completed = db.Column(db.JSON, nullable=False, default=list)
    status = db.Column(db.String(20), nullable=False, default="in_progress", index=True)

    start_date = db.Column(db.Date, nullable=False, default=date.today)
    expected_completion = db.Column(db.Date, nullable=True)
    completion_date = db.Column(db.Date, nullable=True)

    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    client = db.relationship("Client", foreign_keys=[client_id])
    invoice = db.relationship("Invoice", foreign_keys=[invoice_id])

    def to_dict(self):
        return {
            "id": self.id,
            "application_number": self.application_number,
            "client_id": self.client_id,
            "client_name": self.client_name,
            "person_name": self.person_name,
            "pre_approval_mb_number": self.pre_approval_mb_number,
            "invoice_id": self.invoice_id,
            "application_type": self.application_type,
            "application_type_description": self.application_type_description,
            "emirate": self.emirate,
            "current_step": self.current_step,
            "steps_completed": list(self.steps_completed or []),
            "status": self.status,
            "start_date": _iso(self.start_date),
            "expected_completion": _iso(self.expected_completion),
            "completion_date": _iso(self.completion_date),
            "notes": self.notes,
            "created_at": _iso(self.created_at),
        }

    def __repr__(self):
        return f"<Application {self.application_number}>"


# ---------------------------------------------------------------------
# Audit & misc
# ---------------------------------------------------------------------
class AuditLog(db.Model):
    """Append-only change history. Display only, never used to rebuild state."""

    __tablename__ = "audit_log"

    id = db.Column(db.Integer, primary_key=True)

    table_name = db.Column(db.String(50), nullable=False, index=True)
    record_id = db.Column(db.Integer, nullable=False, index=True)

    action = db.Column(db.String(40), nullable=False, index=True)
    changed_by = db.Column(db.String(200), nullable=False, default="system")

    old_data = db.Column(db.JSON, nullable=True)
    new_data = db.Column(db.JSON, nullable=True)
    changed_fields = db.Column(db.JSON, nullable=False, default=list)

    ip_address = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    def to_dict(self):
        return {
            "id": self.id,
            "table_name": self.table_name,
            "record_id": self.record_id,
            "action": self.action,
            "changed_by": self.changed_by,
            "old_data": self.old_data,
            "new_data": self.new_data,
            "changed_fields": list(self.changed_fields or []),
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "created_at": _iso(self.created_at),
        }


class UsefulLink(db.Model):
    __tablename__ = "useful_links"

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(150), nullable=False)
    url = db.Column(db.String(500), nullable=False)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(80), nullable=True, index=True)
    icon = db.Column(db.String(80), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "url": self.url,
            "description": self.description,
            "category": self.category,
            "icon": self.icon,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
