"""Debt-settlement engine for group trips."""
