"""
Event model. The `active` flag gates ticket issuance.
"""

from sqlalchemy import Boolean, Column, Date, Index, Integer, String, Time
from sqlalchemy.orm import relationship

from partypass.db.base import Base, TimestampMixin


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    date = Column(Date, nullable=False)
    time = Column(Time, nullable=False)
    venue = Column(String(255), nullable=False)
    active = Column(Boolean, nullable=False, default=True)

    tickets = relationship("Ticket", back_populates="event", passive_deletes=True)

    __table_args__ = (
        # Sellers list only active events when issuing
        Index("ix_events_active", "active"),
    )

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, name={self.name}, active={self.active})>"
