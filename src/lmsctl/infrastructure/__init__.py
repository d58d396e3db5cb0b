"""Infrastructure layer: persistence backends and the relational database.

This layer depends on stdlib, the domain layer, and third-party libs
(SQLAlchemy, structlog). It must never import from services, commands,
or output.
"""
