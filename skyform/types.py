"""
Service package registration contract.

Every service exposes a ServicePackage that lists the resource and data
source types it implements. The provider consults these tables to build
its type-name to Resource map.

There are two registration styles:

- SDK entries carry the type name in the table next to a factory that
  returns a `skyform.schema.Resource`.
- Framework entries carry only a factory; the object it returns is a
  `FrameworkResource` (or `FrameworkDataSource`) that reports its own
  type name through `metadata()`.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Mapping

from skyform.schema import Resource


class FrameworkResource(ABC):
    """
    Class-based resource implementation.

    Subclasses declare `type_name` and implement `schema()` and the
    lifecycle methods. Each method receives a ResourceData and the
    connection object, like the SDK handler functions do.
    """

    type_name: str = ""
    importable: bool = True
    timeouts: Mapping[str, int] = MappingProxyType({})

    def metadata(self) -> str:
        return self.type_name

    @abstractmethod
    def schema(self) -> dict[str, Any]:
        pass

    @abstractmethod
    def create(self, d, meta) -> None:
        pass

    @abstractmethod
    def read(self, d, meta) -> None:
        pass

    def update(self, d, meta) -> None:
        self.read(d, meta)

    @abstractmethod
    def delete(self, d, meta) -> None:
        pass

    def to_resource(self) -> Resource:
        """Adapt this object to the Resource shape the provider drives."""
        return Resource(
            schema=self.schema(),
            create=self.create,
            read=self.read,
            update=self.update,
            delete=self.delete,
            importable=self.importable,
            timeouts=dict(self.timeouts),
        )


class FrameworkDataSource(ABC):
    """Class-based data source implementation."""

    type_name: str = ""

    def metadata(self) -> str:
        return self.type_name

    @abstractmethod
    def schema(self) -> dict[str, Any]:
        pass

    @abstractmethod
    def read(self, d, meta) -> None:
        pass

    def to_resource(self) -> Resource:
        return Resource(schema=self.schema(), read=self.read)


@dataclass(frozen=True)
class ServicePackageSDKResource:
    factory: Callable[[], Resource]
    type_name: str


@dataclass(frozen=True)
class ServicePackageSDKDataSource:
    factory: Callable[[], Resource]
    type_name: str


@dataclass(frozen=True)
class ServicePackageFrameworkResource:
    factory: Callable[[], FrameworkResource]


@dataclass(frozen=True)
class ServicePackageFrameworkDataSource:
    factory: Callable[[], FrameworkDataSource]


class ServicePackage(ABC):
    """Registration table for one AWS service."""

    def framework_data_sources(self) -> list[ServicePackageFrameworkDataSource]:
        return []

    def framework_resources(self) -> list[ServicePackageFrameworkResource]:
        return []

    def sdk_data_sources(self) -> list[ServicePackageSDKDataSource]:
        return []

    def sdk_resources(self) -> list[ServicePackageSDKResource]:
        return []

    @abstractmethod
    def service_package_name(self) -> str:
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.service_package_name()}')"
