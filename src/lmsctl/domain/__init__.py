"""Domain layer: entities, enums, errors, and loan lifecycle rules.

This layer depends only on stdlib.
It must never import from services, infrastructure, commands, or config.
"""
