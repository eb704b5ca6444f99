"""Infrastructure layer — record store, git mirror, read caches, collaborators.

This layer depends on stdlib and third-party libs (SQLAlchemy, httpx).
It may import domain types but never services, commands, or output.
"""
