from .sequences import Counter
from .invoices import Invoice, InvoiceItem
from .tickets import Ticket, TicketComment
from .timekeeping import AttendanceLog
from .leave import LeaveRequest

__all__ = [
    'Counter',
    'Invoice', 'InvoiceItem',
    'Ticket', 'TicketComment',
    'AttendanceLog',
    'LeaveRequest',
]
