from partypass.models.user import User
from partypass.models.event import Event
from partypass.models.ticket import Ticket
from partypass.models.scan_log import ScanLog
from partypass.models.audit_log import AuditLog

__all__ = ["User", "Event", "Ticket", "ScanLog", "AuditLog"]
