"""BSV primitives: keys, BRC-42 derivation, scripts, transactions."""
