"""Shared datastructures for clusterjoin."""
