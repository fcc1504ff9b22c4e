"""
User model for admins and sellers.

Key design decisions:
- `tickets_sold` is a denormalized counter maintained by the issuance transaction
  (avoids COUNT over tickets on every quota check)
- CHECK constraint `tickets_sold <= ticket_limit` is the final safety net for quota races
- `credential_format` tags how `password` is stored (see core.security)
"""

from sqlalchemy import Boolean, CheckConstraint, Column, Integer, String
from sqlalchemy.orm import relationship

from partypass.db.base import Base, TimestampMixin

ROLE_ADMIN = "admin"
ROLE_SELLER = "seller"


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password = Column(String(255), nullable=False)
    credential_format = Column(String(10), nullable=False, default="hashed")
    role = Column(String(20), nullable=False, default=ROLE_SELLER)

    # Seller quota
    ticket_limit = Column(Integer, nullable=False, default=100)
    tickets_sold = Column(Integer, nullable=False, default=0)

    approved = Column(Boolean, nullable=False, default=False)
    suspended = Column(Boolean, nullable=False, default=False)

    # Contact / profile
    whatsapp = Column(String(64), nullable=True)
    phone = Column(String(64), nullable=True)
    avatar_url = Column(String(1024), nullable=True)

    tickets = relationship("Ticket", back_populates="seller", passive_deletes=True)

    __table_args__ = (
        CheckConstraint("tickets_sold >= 0", name="check_tickets_sold_non_negative"),
        CheckConstraint("ticket_limit >= 0", name="check_ticket_limit_non_negative"),
        CheckConstraint("tickets_sold <= ticket_limit", name="check_tickets_sold_lte_limit"),
        CheckConstraint("role IN ('admin', 'seller')", name="check_user_role"),
        CheckConstraint("credential_format IN ('legacy', 'hashed')", name="check_credential_format"),
    )

    @property
    def is_seller(self) -> bool:
        return self.role == ROLE_SELLER

    @property
    def remaining_tickets(self) -> int:
        return max(self.ticket_limit - self.tickets_sold, 0)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
