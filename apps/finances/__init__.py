"""Finances app package.

Holds the money that is not a booking line item: the per-user wallet
(credit balance and its append-only ledger) and the payment gateway
collaborator that captures and refunds booking payments.
"""
