"""
Shared, cross-cutting code for the API.

`core/` holds small building blocks that several features use
(DB pool, object storage client, error types, logging setup). Dataset SQL and
the CSV pipeline live in the `ingestion/` feature package.
"""

