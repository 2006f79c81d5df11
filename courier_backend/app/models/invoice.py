"""
Invoice database model.

A snapshot of a shipment's billing at generation time. Not kept in sync with
later shipment edits, and retained when the shipment is deleted.
"""

from sqlalchemy import Column, Integer, String, Float, DateTime, Enum
from courier_backend.app.db.session import Base
from courier_backend.app.models.enums import InvoiceStatus


class Invoice(Base):
    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    courier_id = Column(Integer, nullable=True, index=True)
    invoice_number = Column(String(80), unique=True, nullable=False, index=True)

    amount = Column(Float, nullable=False, default=0.0)
    customer_name = Column(String(150), nullable=False)
    customer_address = Column(String(500), nullable=False)
    status = Column(Enum(InvoiceStatus), default=InvoiceStatus.UNPAID, nullable=False)

    generated_at = Column(DateTime(timezone=True), nullable=False)

    def __repr__(self):
        return f"<Invoice(id={self.id}, number='{self.invoice_number}', amount={self.amount})>"
