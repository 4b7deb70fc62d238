"""
Follow-Up Service HTTP API

Usage:
    from followups.api import create_app
    app = create_app()
"""

from .main import create_app
from .dependencies import Services, build_services

__all__ = ["create_app", "Services", "build_services"]
