"""Domain layer — domain names, override models, and the policy resolver.

This layer depends only on stdlib and pydantic.
It must never import from services, infrastructure, commands, or config.
"""
