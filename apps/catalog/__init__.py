"""Catalog app package.

Owns the rentable inventory items (cameras, lenses, audio gear), their
rate cards and the rate table that turns a rental length into an
effective per-day price.
"""
