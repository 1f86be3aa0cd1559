from __future__ import annotations

from ..extensions import db
from bankportal.time_utils import to_utc_z, utcnow


class BankPayment(db.Model):
    """
    International payment request raised by a customer.

    LIFECYCLE: pending -> verified -> submitted. Transitions are applied
    only through conditional bulk UPDATEs in payment_service, keyed on the
    expected prior status, so concurrent staff actions cannot both win.

    version_id is bumped on every transition for backends that lack an
    atomic conditional update and must fall back to optimistic versioning.
    """
    __tablename__ = "bank_payments"
    __table_args__ = (
        db.Index("ix_bank_payments_status", "status"),
        db.Index("ix_bank_payments_customer", "customer_id"),
        db.CheckConstraint("amount > 0", name="ck_bank_payments_amount_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    amount = db.Column(db.Numeric(15, 2, asdecimal=True), nullable=False)
    currency = db.Column(db.String(3), nullable=False)
    payee_account = db.Column(db.String(34), nullable=False)
    swift_code = db.Column(db.String(11), nullable=False)
    provider = db.Column(db.String(16), nullable=False, default="SWIFT")

    status = db.Column(db.String(16), nullable=False, default="pending")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    verified_at = db.Column(db.DateTime(timezone=True), nullable=True)
    verified_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    submitted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    submitted_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    customer = db.relationship("User", foreign_keys=[customer_id], backref=db.backref("payments", lazy=True))
    verifier = db.relationship("User", foreign_keys=[verified_by])
    submitter = db.relationship("User", foreign_keys=[submitted_by])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "amount": f"{self.amount:.2f}" if self.amount is not None else None,
            "currency": self.currency,
            "payee_account": self.payee_account,
            "swift_code": self.swift_code,
            "provider": self.provider,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "verified_at": to_utc_z(self.verified_at),
            "verified_by": self.verified_by,
            "submitted_at": to_utc_z(self.submitted_at),
            "submitted_by": self.submitted_by,
            "version_id": self.version_id,
        }

    def __repr__(self) -> str:
        return f"<BankPayment id={self.id} status={self.status} amount={self.amount} {self.currency}>"
