"""Servicio de reportes de árbol genealógico.

English:
    Family-tree report service: lookup, branch classification, statistics and
    PDF/PNG rendering.
"""

__version__ = "0.3.0"
