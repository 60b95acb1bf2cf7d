"""Strikes app.

Rolling-window accounting of late cancellations and absences, and the
temporary booking restriction they trigger.
"""
