"""Domain models for ledgers and withdrawals."""
