"""Leave credit ledger, multi-level approval workflow and credit conversion service."""
