"""
Tickets Package

Help-desk ticket panel command and the keep-alive message listener.
"""

from .commands import TicketsCog

__all__ = ["TicketsCog"]
