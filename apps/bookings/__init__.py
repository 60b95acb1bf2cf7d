"""Bookings app package.

This app encapsulates the booking engine: admission into fixed-capacity
class sessions through the capacity ledger, the per-session waitlist and
its promotions, and the booking status machine. Every write runs under
the session row lock inside one transaction, with compare-and-set saves
as a second line of defence.
"""
