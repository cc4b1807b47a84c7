"""
Service Layer
"""

from patternchat.services.config_service import ConfigService

__all__ = [
    "ConfigService",
]
