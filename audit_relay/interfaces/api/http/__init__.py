"""Adaptador HTTP: schemas + routers de reporting."""
