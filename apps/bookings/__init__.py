"""Bookings app package.

This app holds the reservation engine: availability over inclusive date
windows, price breakdowns, the booking state machine and the orchestrator
that creates and advances bookings inside database transactions. Stock is
held by pending bookings and released by a periodic hold-expiry sweep.
"""
