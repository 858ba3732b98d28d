"""Promotions app package.

Discount codes and their redemptions. Eligibility rules live in
``domain.validator``; the storage-level usage counter and the per-user
redemption ledger live in ``models`` and ``services``.
"""
