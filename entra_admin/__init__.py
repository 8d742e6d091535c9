"""Entra ID user manager.

To run the CLI:
    entra-user-manager --help

To use the Graph services directly:
    from entra_admin.core.graph import GraphClient, UserService
"""
__version__ = "1.0.0"
