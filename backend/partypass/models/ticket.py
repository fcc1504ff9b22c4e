"""
Ticket model.

Key design decisions:
- event_name/date/time/venue are a snapshot taken at issuance so later event
  edits never rewrite what the customer was sold
- Unique index on ticket_code; a collision surfaces as IntegrityError and the
  issuance transaction is retried with a fresh code
- status only moves unused -> used, enforced by a conditional UPDATE in scan_service
"""

from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Index, Integer, String, Text, Time
from sqlalchemy.orm import relationship

from partypass.db.base import Base, utcnow

STATUS_UNUSED = "unused"
STATUS_USED = "used"


class Ticket(Base):
    __tablename__ = "tickets"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    seller_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Event snapshot at issuance time
    event_name = Column(String(255), nullable=False)
    event_date = Column(Date, nullable=False)
    event_time = Column(Time, nullable=False)
    event_venue = Column(String(255), nullable=False)

    customer_name = Column(String(255), nullable=False)
    customer_whatsapp = Column(String(64), nullable=False)

    ticket_code = Column(String(64), nullable=False)
    qr_code_data = Column(Text, nullable=False)

    status = Column(String(10), nullable=False, default=STATUS_UNUSED)
    issued_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    scanned_at = Column(DateTime(timezone=True), nullable=True)

    event = relationship("Event", back_populates="tickets")
    seller = relationship("User", back_populates="tickets")
    scan_logs = relationship("ScanLog", back_populates="ticket", passive_deletes=True)

    __table_args__ = (
        CheckConstraint("status IN ('unused', 'used')", name="check_ticket_status"),
        # A used ticket always has a scan time
        CheckConstraint("status = 'unused' OR scanned_at IS NOT NULL", name="check_used_ticket_scanned_at"),
        Index("ix_tickets_ticket_code", "ticket_code", unique=True),
        Index("ix_tickets_status", "status"),
    )

    def __repr__(self) -> str:
        return f"<Ticket(id={self.id}, code={self.ticket_code}, status={self.status})>"
