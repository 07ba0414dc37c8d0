"""
Application layer: slug registry use-cases and the profile flows built on them.

- ports: the store interface both slug backends implement
- registries: routing between backends, the registry itself, backfill
"""
