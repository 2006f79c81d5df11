"""
Audit Log Database Model.

Append-only history of every state-affecting operation on a shipment.
"""

from sqlalchemy import Column, Integer, String, DateTime, Text
from courier_backend.app.db.session import Base


class AuditLog(Base):
    """
    Audit log model for shipment history.

    Actions logged:
    - created / updated / deleted
    - status_changed (including proof-of-delivery capture)
    - assigned

    `courier_id` carries no foreign key: entries outlive the shipment and
    `tracking_id` stays the readable key after deletion.
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    courier_id = Column(Integer, index=True, nullable=True)
    tracking_id = Column(String(40), index=True, nullable=False)

    # What action was performed
    action = Column(String(40), nullable=False, index=True)
    description = Column(Text, nullable=False)

    # Who performed it (None for system actions)
    performed_by = Column(Integer, index=True, nullable=True)

    timestamp = Column(DateTime(timezone=True), nullable=False, index=True)

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', tracking_id='{self.tracking_id}')>"
