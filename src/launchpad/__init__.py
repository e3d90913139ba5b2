"""Launchpad - container startup sequencer for PHP framework applications.

Waits for the database, materialises the environment file and application
key, primes framework caches, fixes permissions and then execs the server.
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
