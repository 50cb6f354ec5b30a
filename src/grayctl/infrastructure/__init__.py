"""Infrastructure layer — key-value persistence, policy store, observer registry.

This layer depends on stdlib, pydantic models from the domain layer, and
SQLAlchemy. It must never import from services, commands, or output.
"""
