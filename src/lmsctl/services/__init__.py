"""Service layer: catalog, user, and loan workflows over a persistence backend.

Services may import from domain and infrastructure layers.
They must never import from commands, config, or output.
"""
