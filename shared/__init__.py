"""
Shared Kernel

Base classes and utilities shared across the rental engine apps:
domain events, money and date-range value objects, the unit of work,
the message bus and the clock.
"""
