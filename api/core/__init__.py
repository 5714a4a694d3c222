"""
Plumbing shared by the tenants, auth and ingestion packages.

Database gateway and schema, error kinds and their HTTP rendering, settings,
JSON logging, request ids, and UUID / timestamp helpers. Nothing here knows
about organizations, tokens or test runs.
"""
