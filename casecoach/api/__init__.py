"""HTTP API for the coaching operations.

Usage:
    from casecoach.api import create_app
"""

from casecoach.api.server import AppServices, build_services, create_app

__all__ = ["AppServices", "build_services", "create_app"]
