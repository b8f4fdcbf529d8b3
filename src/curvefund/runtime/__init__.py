"""Campaign runtime: ledger, logic, atomicity, persistence, config."""
