"""
Amazon Macie Classic resources.
"""

from skyform.services.macie.service_package import service_package

__all__ = ["service_package"]
