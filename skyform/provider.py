"""
Provider: the host side of the plugin contract.

The Provider collects the registration tables of every service package,
owns the configured AWS connection object, and drives the lifecycle of
resource instances: validate, plan, create, read, update, delete, import.
"""

import logging
from dataclasses import dataclass
from typing import Any

from skyform.config import AwsConfig
from skyform.conns import AWSClient
from skyform.errors import (
    RegistrationError,
    ResourceOperationError,
    UnknownResourceTypeError,
    ValidationError,
)
from skyform.resource_data import ResourceData
from skyform.schema import Resource
from skyform.types import ServicePackage

log = logging.getLogger(__name__)

ACTION_CREATE = "create"
ACTION_UPDATE = "update"
ACTION_REPLACE = "replace"
ACTION_DELETE = "delete"
ACTION_NOOP = "no-op"


@dataclass
class Plan:
    """The planned action for one resource instance."""

    action: str
    type_name: str
    replace_fields: list[str]

    @property
    def requires_change(self) -> bool:
        return self.action != ACTION_NOOP


class Provider:
    """
    AWS provider configured by injection.

    Example:
        from skyform import Provider
        from skyform.config import AwsConfig

        provider = Provider(config=AwsConfig(region="us-east-1"))
        state = provider.create(
            "aws_macie_s3_bucket_association",
            {"bucket_name": "my-logs"},
        )
        provider.delete("aws_macie_s3_bucket_association", state)
    """

    def __init__(
        self,
        config: AwsConfig | None = None,
        meta: AWSClient | None = None,
        service_packages: list[ServicePackage] | None = None,
    ):
        """
        Initialize the provider.

        Args:
            config: AWS configuration used to build the connection object
            meta: Ready-made connection object (takes precedence over config)
            service_packages: Registration tables to load; defaults to the
                built-in packages plus entry-point registrations

        Raises:
            TypeError: If neither config nor meta is given
            RegistrationError: If two packages register the same type name
        """
        if config is None and meta is None:
            raise TypeError(
                "Provider requires a config object. "
                "Example: Provider(config=AwsConfig(region='us-east-1'))"
            )

        if service_packages is None:
            from skyform.services import service_packages as load_service_packages

            service_packages = load_service_packages()

        self.config = config
        self._meta = meta
        self.service_packages = list(service_packages)
        self._resources: dict[str, Resource] = {}
        self._data_sources: dict[str, Resource] = {}
        self._service_of: dict[str, str] = {}
        self._register()

    @property
    def meta(self) -> AWSClient:
        """The connection object handed to every handler, built on first use."""
        if self._meta is None:
            self._meta = AWSClient.from_config(self.config)
        return self._meta

    def _register(self) -> None:
        for package in self.service_packages:
            service = package.service_package_name()

            for entry in package.sdk_resources():
                self._add(self._resources, entry.type_name, entry.factory(), service)

            for entry in package.framework_resources():
                instance = entry.factory()
                self._add(self._resources, instance.metadata(), instance.to_resource(), service)

            for entry in package.sdk_data_sources():
                self._add(self._data_sources, entry.type_name, entry.factory(), service)

            for entry in package.framework_data_sources():
                instance = entry.factory()
                self._add(self._data_sources, instance.metadata(), instance.to_resource(), service)

    def _add(self, table: dict[str, Resource], type_name: str, resource: Resource, service: str) -> None:
        if not type_name:
            raise RegistrationError(f"service package {service} registered a type without a name")
        if type_name in table:
            raise RegistrationError(
                f"{type_name} is registered by both {self._service_of[type_name]} and {service}"
            )
        log.debug("Registered %s (%s)", type_name, service)
        table[type_name] = resource
        self._service_of[type_name] = service

    @property
    def default_tags(self) -> dict[str, str]:
        if self._meta is not None:
            return self._meta.default_tags
        return dict(self.config.tags)

    def resources_map(self) -> dict[str, Resource]:
        return dict(self._resources)

    def data_sources_map(self) -> dict[str, Resource]:
        return dict(self._data_sources)

    def service_for(self, type_name: str) -> str:
        return self._service_of[type_name]

    def resource(self, type_name: str) -> Resource:
        try:
            return self._resources[type_name]
        except KeyError:
            raise UnknownResourceTypeError(f"unsupported resource type: {type_name}") from None

    def data_source(self, type_name: str) -> Resource:
        try:
            return self._data_sources[type_name]
        except KeyError:
            raise UnknownResourceTypeError(f"unsupported data source type: {type_name}") from None

    def validate(self, type_name: str, config: dict[str, Any]) -> None:
        """
        Raises:
            UnknownResourceTypeError: If the type is not registered
            ValidationError: If the configuration is invalid
        """
        problems = self.resource(type_name).validate(config)
        if problems:
            raise ValidationError(type_name, problems)

    def plan(
        self,
        type_name: str,
        state: dict[str, Any] | None,
        config: dict[str, Any] | None,
    ) -> Plan:
        """Decide what applying `config` over `state` requires."""
        resource = self.resource(type_name)

        if config is None:
            action = ACTION_DELETE if state else ACTION_NOOP
            return Plan(action, type_name, [])
        self.validate(type_name, config)
        if not state:
            return Plan(ACTION_CREATE, type_name, [])

        desired = resource.apply_defaults(config)
        replace = resource.force_new_changes(state, desired)
        if replace:
            return Plan(ACTION_REPLACE, type_name, replace)

        d = ResourceData(resource, config=config, state=state)
        if d.has_changes_except("tags_all") or _tags_all_changed(d, self.default_tags):
            return Plan(ACTION_UPDATE, type_name, [])
        return Plan(ACTION_NOOP, type_name, [])

    def create(self, type_name: str, config: dict[str, Any]) -> dict[str, Any] | None:
        resource = self.resource(type_name)
        self.validate(type_name, config)
        d = ResourceData(resource, config=config)
        log.info("Creating %s", type_name)
        resource.create(d, self.meta)
        return d.state()

    def read(self, type_name: str, state: dict[str, Any]) -> dict[str, Any] | None:
        """Refresh state from the remote API; None means the object is gone."""
        resource = self.resource(type_name)
        d = ResourceData(resource, state=state)
        resource.read(d, self.meta)
        return d.state()

    def update(
        self,
        type_name: str,
        state: dict[str, Any],
        config: dict[str, Any],
    ) -> dict[str, Any] | None:
        resource = self.resource(type_name)
        self.validate(type_name, config)
        d = ResourceData(resource, config=config, state=state)
        log.info("Updating %s (%s)", type_name, d.id)
        if resource.update is None:
            resource.read(d, self.meta)
        else:
            resource.update(d, self.meta)
        return d.state()

    def delete(self, type_name: str, state: dict[str, Any]) -> None:
        resource = self.resource(type_name)
        d = ResourceData(resource, state=state)
        log.info("Deleting %s (%s)", type_name, d.id)
        resource.delete(d, self.meta)

    def import_resource(self, type_name: str, resource_id: str) -> dict[str, Any]:
        """
        Read an existing remote object into state by its identifier.

        Raises:
            ResourceOperationError: If the type cannot be imported or the
                object does not exist
        """
        resource = self.resource(type_name)
        if not resource.importable:
            raise ResourceOperationError(f"resource {type_name} doesn't support import")

        d = ResourceData(resource, state={"id": resource_id})
        resource.read(d, self.meta)
        state = d.state()
        if state is None:
            raise ResourceOperationError(
                f"cannot import non-existent remote object {type_name} ({resource_id})"
            )
        return state

    def apply(
        self,
        type_name: str,
        state: dict[str, Any] | None,
        config: dict[str, Any] | None,
    ) -> dict[str, Any] | None:
        """Carry out the planned action and return the new state."""
        plan = self.plan(type_name, state, config)

        if plan.action == ACTION_CREATE:
            return self.create(type_name, config)
        if plan.action == ACTION_DELETE:
            self.delete(type_name, state)
            return None
        if plan.action == ACTION_REPLACE:
            log.info("Replacing %s, forced by %s", type_name, ", ".join(plan.replace_fields))
            self.delete(type_name, state)
            return self.create(type_name, config)
        if plan.action == ACTION_UPDATE:
            return self.update(type_name, state, config)
        return state

    def read_data_source(self, type_name: str, config: dict[str, Any]) -> dict[str, Any] | None:
        data_source = self.data_source(type_name)
        problems = data_source.validate(config)
        if problems:
            raise ValidationError(type_name, problems)
        d = ResourceData(data_source, config=config)
        data_source.read(d, self.meta)
        return d.state()

    def __repr__(self) -> str:
        region = self.config.region if self.config is not None else self.meta.region
        return f"Provider(type='aws', region='{region}', resources={len(self._resources)})"


def _tags_all_changed(d: ResourceData, default_tags: dict[str, str]) -> bool:
    if "tags_all" not in d.resource.schema:
        return False
    old, _ = d.get_change("tags_all")
    return old != {**default_tags, **(d.get("tags") or {})}
