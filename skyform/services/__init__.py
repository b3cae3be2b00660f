"""
Built-in service packages.

Each service lives in its own subpackage exposing a `service_package`
registration table. Packages installed separately register under the
`skyform.service_packages` entry-point group instead:

    [project.entry-points."skyform.service_packages"]
    mediaconnect = "my_package.mediaconnect:service_package"
"""

import logging
from importlib.metadata import entry_points

from skyform.types import ServicePackage

log = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "skyform.service_packages"


def builtin_service_packages() -> list[ServicePackage]:
    from skyform.services import macie, medialive

    return [
        macie.service_package,
        medialive.service_package,
    ]


def discover_service_packages() -> list[ServicePackage]:
    """Load service packages registered through entry points."""
    packages = []
    for ep in entry_points(group=ENTRY_POINT_GROUP):
        log.debug("Loading service package %s from %s", ep.name, ep.value)
        package = ep.load()
        if not isinstance(package, ServicePackage):
            raise TypeError(f"entry point {ep.name} is not a ServicePackage: {package!r}")
        packages.append(package)
    return packages


def service_packages(include_entry_points: bool = True) -> list[ServicePackage]:
    packages = builtin_service_packages()
    if include_entry_points:
        packages.extend(discover_service_packages())
    return packages
