"""Interfaces (adaptadores de entrada)."""
