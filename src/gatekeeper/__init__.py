"""
Gatekeeper - privacy-gated inference dispatch.

Package structure:
- core: Configuration, logging, shared typing aliases
- providers: Provider abstraction, remote/on-device backends, ProviderManager
- cli: Command line entry point
"""

__version__ = "0.1.0"
