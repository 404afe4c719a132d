"""Shared-expense ledger: expense splitting and debt settlement."""
