"""Zcash primitives: consensus parameters, addresses, scripts, v5 transactions."""
