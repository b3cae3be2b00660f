"""
Tests for the Provider: registration and lifecycle orchestration.
"""

from unittest.mock import MagicMock

import pytest

from skyform.config import AwsConfig
from skyform.conns import AWSClient
from skyform.errors import (
    RegistrationError,
    ResourceOperationError,
    UnknownResourceTypeError,
    ValidationError,
)
from skyform.provider import Plan, Provider
from skyform.schema import TYPE_STRING, Resource, Schema
from skyform.services import discover_service_packages
from skyform.services.macie import service_package as macie_package
from skyform.tags import tags_schema, tags_schema_computed
from skyform.types import (
    FrameworkDataSource,
    FrameworkResource,
    ServicePackage,
    ServicePackageFrameworkDataSource,
    ServicePackageFrameworkResource,
    ServicePackageSDKResource,
)

MACIE = "aws_macie_s3_bucket_association"


def widget_resource(handlers: MagicMock, importable: bool = False) -> Resource:
    return Resource(
        schema={
            "name": Schema(type=TYPE_STRING, required=True, force_new=True),
            "comment": Schema(type=TYPE_STRING, optional=True),
            "tags": tags_schema(),
            "tags_all": tags_schema_computed(),
        },
        create=handlers.create,
        read=handlers.read,
        update=handlers.update,
        delete=handlers.delete,
        importable=importable,
    )


class WidgetPackage(ServicePackage):
    def __init__(self, name: str = "widgets", type_name: str = "aws_widget", handlers=None):
        self.name = name
        self.type_name = type_name
        self.handlers = handlers or MagicMock()

    def sdk_resources(self):
        return [
            ServicePackageSDKResource(
                factory=lambda: widget_resource(self.handlers, importable=True),
                type_name=self.type_name,
            ),
        ]

    def service_package_name(self):
        return self.name


class Gadget(FrameworkResource):
    type_name = "aws_gadget"

    def schema(self):
        return {"name": Schema(type=TYPE_STRING, required=True)}

    def create(self, d, meta):
        d.set_id(d.get("name"))

    def read(self, d, meta):
        pass

    def delete(self, d, meta):
        pass


class GadgetRegion(FrameworkDataSource):
    type_name = "aws_gadget_region"

    def schema(self):
        return {
            "name": Schema(type=TYPE_STRING, required=True),
            "endpoint": Schema(type=TYPE_STRING, computed=True),
        }

    def read(self, d, meta):
        d.set_id(d.get("name"))
        d.set("endpoint", f"https://gadgets.{d.get('name')}.amazonaws.com")


class GadgetPackage(ServicePackage):
    def framework_resources(self):
        return [ServicePackageFrameworkResource(factory=Gadget)]

    def framework_data_sources(self):
        return [ServicePackageFrameworkDataSource(factory=GadgetRegion)]

    def service_package_name(self):
        return "gadgets"


@pytest.fixture
def widgets():
    return WidgetPackage()


@pytest.fixture
def widget_provider(widgets):
    meta = AWSClient(region="us-east-1", default_tags={"env": "test"}, clients={})
    return Provider(meta=meta, service_packages=[widgets, GadgetPackage()])


class TestRegistration:
    """Tests for building the type-name tables."""

    def test_requires_config(self):
        """Test a provider without configuration is rejected."""
        with pytest.raises(TypeError, match="requires a config"):
            Provider()

    def test_config_builds_meta_lazily(self):
        """Test no AWS session is created until a handler needs one."""
        provider = Provider(config=AwsConfig(region="eu-west-1", tags={"team": "video"}), service_packages=[])

        assert provider._meta is None
        assert provider.default_tags == {"team": "video"}
        assert repr(provider) == "Provider(type='aws', region='eu-west-1', resources=0)"

    def test_builtin_packages(self):
        """Test the default service packages include Macie and MediaLive."""
        provider = Provider(meta=AWSClient(clients={}))

        assert MACIE in provider.resources_map()
        assert "aws_medialive_multiplex_program" in provider.resources_map()

    def test_framework_resource_name(self, widget_provider):
        """Test framework resources register under their own metadata name."""
        assert widget_provider.service_for("aws_gadget") == "gadgets"
        assert widget_provider.service_for("aws_widget") == "widgets"

    def test_framework_timeouts_not_shared(self):
        """Test framework resources cannot change the default timeouts of other types."""
        resource = Gadget().to_resource()
        resource.timeouts["create"] = 5

        assert Gadget().to_resource().timeout("create") == 1800
        with pytest.raises(TypeError):
            Gadget.timeouts["create"] = 5

    def test_duplicate_type_name(self, widgets):
        """Test two packages registering the same type name is an error."""
        other = WidgetPackage(name="others")

        with pytest.raises(RegistrationError, match="aws_widget is registered by both widgets and others"):
            Provider(meta=AWSClient(clients={}), service_packages=[widgets, other])

    def test_empty_type_name(self):
        """Test a registration without a type name is an error."""
        with pytest.raises(RegistrationError, match="without a name"):
            Provider(meta=AWSClient(clients={}), service_packages=[WidgetPackage(type_name="")])

    def test_unknown_type(self, widget_provider):
        """Test unknown type names raise UnknownResourceTypeError."""
        with pytest.raises(UnknownResourceTypeError, match="aws_nothing"):
            widget_provider.resource("aws_nothing")
        with pytest.raises(UnknownResourceTypeError):
            widget_provider.data_source("aws_nothing")

    def test_entry_points(self, monkeypatch):
        """Test entry-point registrations must be ServicePackages."""
        good = MagicMock()
        good.name = "widgets"
        good.load.return_value = WidgetPackage()
        bad = MagicMock()
        bad.name = "broken"
        bad.load.return_value = object()
        monkeypatch.setattr("skyform.services.entry_points", lambda group: [good])

        assert [p.service_package_name() for p in discover_service_packages()] == ["widgets"]

        monkeypatch.setattr("skyform.services.entry_points", lambda group: [bad])
        with pytest.raises(TypeError, match="broken"):
            discover_service_packages()

    def test_macie_package_repr(self):
        """Test packages describe themselves by name."""
        assert repr(macie_package) == "MacieServicePackage(name='macie')"


class TestPlan:
    """Tests for planning actions."""

    STATE = {
        "id": "w1",
        "name": "w1",
        "comment": "",
        "tags": {},
        "tags_all": {"env": "test"},
    }

    def test_create(self, widget_provider):
        """Test a configuration without state plans a create."""
        plan = widget_provider.plan("aws_widget", None, {"name": "w1"})

        assert plan == Plan("create", "aws_widget", [])
        assert plan.requires_change

    def test_delete(self, widget_provider):
        """Test state without configuration plans a delete."""
        assert widget_provider.plan("aws_widget", self.STATE, None).action == "delete"
        assert widget_provider.plan("aws_widget", None, None).action == "no-op"

    def test_noop(self, widget_provider):
        """Test matching configuration and state need no change."""
        plan = widget_provider.plan("aws_widget", self.STATE, {"name": "w1"})

        assert plan.action == "no-op"
        assert not plan.requires_change

    def test_update(self, widget_provider):
        """Test a changed in-place attribute plans an update."""
        assert widget_provider.plan("aws_widget", self.STATE, {"name": "w1", "comment": "hi"}).action == "update"

    def test_default_tags_change_plans_update(self, widget_provider):
        """Test a change to provider default tags is picked up."""
        state = dict(self.STATE, tags_all={})

        assert widget_provider.plan("aws_widget", state, {"name": "w1"}).action == "update"

    def test_replace(self, widget_provider):
        """Test a changed force_new attribute plans a replacement."""
        plan = widget_provider.plan("aws_widget", self.STATE, {"name": "w2"})

        assert plan.action == "replace"
        assert plan.replace_fields == ["name"]

    def test_invalid_config(self, widget_provider):
        """Test planning validates the configuration."""
        with pytest.raises(ValidationError) as exc:
            widget_provider.plan("aws_widget", None, {})

        assert exc.value.type_name == "aws_widget"
        assert exc.value.problems == ["name: required argument is missing"]

    def test_tags_all_cannot_be_configured(self, widget_provider):
        """Test the merged tag map is output only."""
        with pytest.raises(ValidationError) as exc:
            widget_provider.plan("aws_widget", None, {"name": "w1", "tags_all": {"env": "prod"}})

        assert exc.value.problems == ["tags_all: cannot be set, value is computed"]


class TestLifecycle:
    """Tests for create, update, delete, apply and import."""

    def test_create_passes_meta(self, widget_provider, widgets):
        """Test handlers receive the ResourceData and the connection object."""
        widgets.handlers.create.side_effect = lambda d, meta: d.set_id(d.get("name"))

        state = widget_provider.create("aws_widget", {"name": "w1"})

        _, meta = widgets.handlers.create.call_args.args
        assert meta is widget_provider.meta
        assert state["id"] == "w1"

    def test_create_validates(self, widget_provider, widgets):
        """Test invalid configuration never reaches the handler."""
        with pytest.raises(ValidationError):
            widget_provider.create("aws_widget", {"name": "w1", "colour": "red"})

        widgets.handlers.create.assert_not_called()

    def test_apply_replace(self, widget_provider, widgets):
        """Test a replacement deletes before creating."""
        calls = []
        widgets.handlers.delete.side_effect = lambda d, meta: calls.append(("delete", d.id))

        def create(d, meta):
            calls.append(("create", d.get("name")))
            d.set_id(d.get("name"))

        widgets.handlers.create.side_effect = create

        state = widget_provider.apply("aws_widget", TestPlan.STATE, {"name": "w2"})

        assert calls == [("delete", "w1"), ("create", "w2")]
        assert state["id"] == "w2"

    def test_apply_update(self, widget_provider, widgets):
        """Test apply dispatches updates to the update handler."""
        widget_provider.apply("aws_widget", TestPlan.STATE, {"name": "w1", "comment": "hi"})

        widgets.handlers.update.assert_called_once()
        d, _ = widgets.handlers.update.call_args.args
        assert d.get_change("comment") == ("", "hi")

    def test_apply_noop(self, widget_provider, widgets):
        """Test a no-op returns the prior state without calling handlers."""
        state = widget_provider.apply("aws_widget", TestPlan.STATE, {"name": "w1"})

        assert state == TestPlan.STATE
        widgets.handlers.update.assert_not_called()

    def test_apply_delete(self, widget_provider, widgets):
        """Test removing configuration deletes the resource."""
        assert widget_provider.apply("aws_widget", TestPlan.STATE, None) is None

        widgets.handlers.delete.assert_called_once()

    def test_import(self, widget_provider):
        """Test import reads an existing object by id."""
        state = widget_provider.import_resource("aws_widget", "w1")

        assert state["id"] == "w1"

    def test_import_missing(self, widget_provider, widgets):
        """Test importing a non-existent object fails."""
        widgets.handlers.read.side_effect = lambda d, meta: d.set_id("")

        with pytest.raises(ResourceOperationError, match="cannot import non-existent remote object"):
            widget_provider.import_resource("aws_widget", "w1")

    def test_import_not_supported(self, widget_provider):
        """Test resources without import support are rejected."""
        provider = Provider(meta=widget_provider.meta, service_packages=[macie_package])

        with pytest.raises(ResourceOperationError, match="doesn't support import"):
            provider.import_resource(MACIE, "my-bucket/")

    def test_framework_resource_lifecycle(self, widget_provider):
        """Test framework resources run through the same lifecycle."""
        state = widget_provider.create("aws_gadget", {"name": "g1"})

        assert state == {"id": "g1", "name": "g1"}
        widget_provider.delete("aws_gadget", state)


class TestDataSources:
    """Tests for reading data sources."""

    def test_read(self, widget_provider):
        """Test a data source read returns its computed attributes."""
        state = widget_provider.read_data_source("aws_gadget_region", {"name": "eu-west-1"})

        assert state == {
            "id": "eu-west-1",
            "name": "eu-west-1",
            "endpoint": "https://gadgets.eu-west-1.amazonaws.com",
        }
        assert widget_provider.service_for("aws_gadget_region") == "gadgets"

    def test_invalid_config(self, widget_provider):
        """Test data source configuration is validated before reading."""
        with pytest.raises(ValidationError) as exc:
            widget_provider.read_data_source("aws_gadget_region", {})

        assert exc.value.problems == ["name: required argument is missing"]
