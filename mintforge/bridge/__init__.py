"""Bridges to the outside world: ledger RPC and the signing wallet."""
