"""Business logic for the session lifecycle and hour ledger."""
