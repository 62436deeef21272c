"""API HTTP del servicio de árbol genealógico.

English: HTTP API for the family-tree service.
"""
