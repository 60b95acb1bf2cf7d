"""Notifications app package.

Stores inbox notifications produced by the booking engine (waitlist
promotions, strike alerts). Delivery runs in Celery tasks enqueued after
the engine's transaction commits.
"""
