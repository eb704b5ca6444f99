"""Repositories encapsulating record-store SQL."""
