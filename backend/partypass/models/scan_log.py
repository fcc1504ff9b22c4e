"""
Append-only record of successful redemptions.
"""

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from partypass.db.base import Base, utcnow


class ScanLog(Base):
    __tablename__ = "scan_logs"

    id = Column(Integer, primary_key=True, index=True)
    ticket_id = Column(Integer, ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False, index=True)
    ticket_code = Column(String(64), nullable=False)
    scanner_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    scanned_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    ticket = relationship("Ticket", back_populates="scan_logs")

    __table_args__ = (
        Index("ix_scan_logs_scanned_at", "scanned_at"),
    )

    def __repr__(self) -> str:
        return f"<ScanLog(id={self.id}, ticket={self.ticket_code}, scanner={self.scanner_id})>"
