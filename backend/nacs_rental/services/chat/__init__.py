"""Chat helpers"""
from nacs_rental.services.chat.reconcile import Confirmed, Pending, reconcile

__all__ = ['Confirmed', 'Pending', 'reconcile']
