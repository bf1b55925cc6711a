"""
Shared utilities: configuration, logging, errors, schemas, payload codec and store clients.
"""
