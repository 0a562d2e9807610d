"""
crm-ledger – voucher credit ledger and local-to-remote migration for the CRM console.

Subpackages:
- domain: entity models, field mapping, shape checks
- ledger: purchase/consumption aggregation and balance calculation
- store: remote record store client and local cache
- migration: migration engine and status probe
- services: multi-step customer updates
"""

__all__ = [
    "config",
    "logging",
    "paths",
]
