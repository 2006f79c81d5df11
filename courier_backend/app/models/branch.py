"""
Branch database model.

A branch is a physical hub a shipment may be routed through.
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.sql import func
from courier_backend.app.db.session import Base


class Branch(Base):
    __tablename__ = "branches"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(200), unique=True, nullable=False, index=True)
    address = Column(String(500), nullable=False)
    phone = Column(String(20), nullable=True)
    manager_id = Column(Integer, ForeignKey('users.id', ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Branch(id={self.id}, name='{self.name}')>"
