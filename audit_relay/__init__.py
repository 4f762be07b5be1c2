"""audit-relay: captura de mutaciones y relay por lotes hacia el audit store."""

__version__ = "0.1.0"
