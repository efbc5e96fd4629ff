"""HTTP API for the labour ledger."""
