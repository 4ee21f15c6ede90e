"""
Infrastructure layer containing external dependencies and I/O operations.

This layer handles service configuration files, logging, and the monitors
that mirror a coordination store into a local cache.
"""
