"""Simulated account: ledger, trade execution and quote providers."""
