"""hide-helper: message visibility index for chat front-ends.

Maintains a hidden/visible partition over chat messages and applies range
updates to it, in a background process when available.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
