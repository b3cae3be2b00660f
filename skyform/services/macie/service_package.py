"""
Macie service package.
"""

from skyform import names
from skyform.services.macie.s3_bucket_association import resource_s3_bucket_association
from skyform.types import ServicePackage, ServicePackageSDKResource


class MacieServicePackage(ServicePackage):
    def sdk_resources(self) -> list[ServicePackageSDKResource]:
        return [
            ServicePackageSDKResource(
                factory=resource_s3_bucket_association,
                type_name="aws_macie_s3_bucket_association",
            ),
        ]

    def service_package_name(self) -> str:
        return names.MACIE


service_package = MacieServicePackage()
