"""
MediaLive service package.
"""

from skyform import names
from skyform.services.medialive.channel import resource_channel
from skyform.services.medialive.input import resource_input
from skyform.services.medialive.input_security_group import resource_input_security_group
from skyform.services.medialive.multiplex import resource_multiplex
from skyform.services.medialive.multiplex_program import new_resource_multiplex_program
from skyform.types import (
    ServicePackage,
    ServicePackageFrameworkDataSource,
    ServicePackageFrameworkResource,
    ServicePackageSDKDataSource,
    ServicePackageSDKResource,
)


class MediaLiveServicePackage(ServicePackage):
    def framework_data_sources(self) -> list[ServicePackageFrameworkDataSource]:
        return []

    def framework_resources(self) -> list[ServicePackageFrameworkResource]:
        return [
            ServicePackageFrameworkResource(
                factory=new_resource_multiplex_program,
            ),
        ]

    def sdk_data_sources(self) -> list[ServicePackageSDKDataSource]:
        return []

    def sdk_resources(self) -> list[ServicePackageSDKResource]:
        return [
            ServicePackageSDKResource(
                factory=resource_channel,
                type_name="aws_medialive_channel",
            ),
            ServicePackageSDKResource(
                factory=resource_input,
                type_name="aws_medialive_input",
            ),
            ServicePackageSDKResource(
                factory=resource_input_security_group,
                type_name="aws_medialive_input_security_group",
            ),
            ServicePackageSDKResource(
                factory=resource_multiplex,
                type_name="aws_medialive_multiplex",
            ),
        ]

    def service_package_name(self) -> str:
        return names.MEDIALIVE


service_package = MediaLiveServicePackage()
