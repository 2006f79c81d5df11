"""
Proof of Delivery database model.

Captured once, when an agent completes a delivery. Immutable afterwards.
"""

from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey
from courier_backend.app.db.session import Base


class ProofOfDelivery(Base):
    __tablename__ = "proof_of_delivery"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    courier_id = Column(Integer, ForeignKey('shipments.id', ondelete="CASCADE"), unique=True, nullable=False, index=True)

    signee_name = Column(String(150), nullable=False)
    signature_id = Column(String(255), nullable=True)  # blob reference
    photo_id = Column(String(255), nullable=True)  # blob reference

    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    timestamp = Column(DateTime(timezone=True), nullable=False)

    def __repr__(self):
        return f"<ProofOfDelivery(id={self.id}, courier_id={self.courier_id}, signee='{self.signee_name}')>"
