"""Class sessions app.

Holds the scheduled sessions owned by the scheduling side of the portal
and exposes the class listing. Seat accounting on a session is done by
the booking engine only.
"""
