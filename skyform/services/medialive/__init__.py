"""
AWS Elemental MediaLive resources.
"""

from skyform.services.medialive.service_package import service_package

__all__ = ["service_package"]
