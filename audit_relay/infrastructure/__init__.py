"""Infraestructura: DB, message log (Redis Streams) y repositorios."""
