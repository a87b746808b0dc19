from callback_tracker.models.ticket import Department, Note, Ticket, TicketPriority, TicketStatus

__all__ = ["Ticket", "Note", "TicketStatus", "TicketPriority", "Department"]
