"""
Feature modules live under this package.

Each module owns its models, service functions and blueprints, and reuses the
platform pieces (auth, RBAC, audit, storage, media client, DB session).
"""
