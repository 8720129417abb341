"""
clubroom - book the club rehearsal room by date and time slot.
"""

__version__ = "0.1.0"
