"""Pure campaign model: constants, curve, share table, state, errors."""
