"""
skyform CLI - plan and apply declarative AWS resource configurations.
"""

import json
import logging
import sys

import click

from skyform import __version__
from skyform.config import load_config
from skyform.errors import SkyformError
from skyform.provider import ACTION_NOOP, ACTION_REPLACE, Provider
from skyform.state import StateFile

DEFAULT_STATE = "skyform.state.json"

_SYMBOLS = {
    "create": "+",
    "update": "~",
    "replace": "-/+",
    "delete": "-",
    ACTION_NOOP: " ",
}


@click.group()
@click.version_option(version=__version__)
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, debug: bool):
    """
    skyform - resource plugins for AWS infrastructure-as-code.

    Declare resources in YAML; skyform translates them into AWS API calls.
    """
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@cli.command()
@click.option("--service", "-s", help="Only list types from this service package")
def resources(service: str):
    """
    List the registered resource and data source types.

    Example:
        skyform resources
        skyform resources --service medialive
    """
    from skyform.services import service_packages

    for package in service_packages():
        name = package.service_package_name()
        if service and name != service:
            continue

        click.echo(f"{name}:")
        for entry in package.sdk_resources():
            click.echo(f"  resource     {entry.type_name}")
        for entry in package.framework_resources():
            click.echo(f"  resource     {entry.factory().metadata()}")
        for entry in package.sdk_data_sources():
            click.echo(f"  data source  {entry.type_name}")
        for entry in package.framework_data_sources():
            click.echo(f"  data source  {entry.factory().metadata()}")


@cli.command()
@click.argument("config_file", type=click.Path(exists=True))
@click.pass_context
def validate(ctx, config_file: str):
    """
    Validate every resource in a configuration file.

    Example:
        skyform validate resources.yaml
    """
    config = _load(ctx, config_file)
    provider = Provider(config=config.provider)

    failed = False
    for type_name, name, resource_config in config.instances():
        try:
            provider.validate(type_name, resource_config)
        except SkyformError as e:
            failed = True
            click.echo(f"✗ {type_name}.{name}: {e}", err=True)

    if failed:
        sys.exit(1)
    click.echo(f"✓ {len(config.instances())} resource(s) valid")


@cli.command()
@click.argument("config_file", type=click.Path(exists=True))
@click.option("--state", "state_file", default=DEFAULT_STATE, help="State file path")
@click.pass_context
def plan(ctx, config_file: str, state_file: str):
    """
    Show the actions apply would take.

    Example:
        skyform plan resources.yaml --state prod.state.json
    """
    config = _load(ctx, config_file)
    provider = Provider(config=config.provider)
    state = StateFile.load(state_file)

    changes = 0
    for type_name, name, action, fields in _plan(ctx, provider, config, state):
        if action != ACTION_NOOP:
            changes += 1
        suffix = f" (forced by {', '.join(fields)})" if fields else ""
        click.echo(f"{_SYMBOLS[action]:>3} {type_name}.{name}: {action}{suffix}")

    click.echo(f"\nPlan: {changes} change(s)")


@cli.command()
@click.argument("config_file", type=click.Path(exists=True))
@click.option("--state", "state_file", default=DEFAULT_STATE, help="State file path")
@click.pass_context
def apply(ctx, config_file: str, state_file: str):
    """
    Create, update, replace or delete resources to match the configuration.

    State is saved after every resource so a failure keeps earlier progress.

    Example:
        skyform apply resources.yaml
    """
    config = _load(ctx, config_file)
    provider = Provider(config=config.provider)
    state = StateFile.load(state_file)

    desired = {(t, n): c for t, n, c in config.instances()}

    for type_name, name, action, _ in _plan(ctx, provider, config, state):
        if action == ACTION_NOOP:
            continue
        current = state.get(type_name, name)
        try:
            if action == ACTION_REPLACE:
                provider.delete(type_name, current)
                # the old object is gone even if the create fails
                state.put(type_name, name, None)
                state.save()
                current = None
            new_state = provider.apply(type_name, current, desired.get((type_name, name)))
        except SkyformError as e:
            state.save()
            _fail(ctx, f"{type_name}.{name}: {e}")
        state.put(type_name, name, new_state)
        state.save()
        click.echo(f"✓ {type_name}.{name}: {action}")

    click.echo("Apply complete")


@cli.command()
@click.argument("config_file", type=click.Path(exists=True))
@click.option("--state", "state_file", default=DEFAULT_STATE, help="State file path")
@click.pass_context
def refresh(ctx, config_file: str, state_file: str):
    """
    Re-read every resource in state from AWS.

    Resources that no longer exist are dropped from state.
    """
    config = _load(ctx, config_file)
    provider = Provider(config=config.provider)
    state = StateFile.load(state_file)

    for type_name, name, current in state.entries():
        try:
            new_state = provider.read(type_name, current)
        except SkyformError as e:
            _fail(ctx, f"{type_name}.{name}: {e}")
        state.put(type_name, name, new_state)
        if new_state is None:
            click.echo(f"- {type_name}.{name}: gone, removed from state")

    state.save()


@cli.command()
@click.argument("config_file", type=click.Path(exists=True))
@click.option("--state", "state_file", default=DEFAULT_STATE, help="State file path")
@click.pass_context
def destroy(ctx, config_file: str, state_file: str):
    """
    Delete every resource recorded in state.

    Example:
        skyform destroy resources.yaml
    """
    config = _load(ctx, config_file)
    provider = Provider(config=config.provider)
    state = StateFile.load(state_file)

    for type_name, name, current in reversed(state.entries()):
        try:
            provider.delete(type_name, current)
        except SkyformError as e:
            state.save()
            _fail(ctx, f"{type_name}.{name}: {e}")
        state.put(type_name, name, None)
        state.save()
        click.echo(f"✓ {type_name}.{name}: deleted")

    click.echo("Destroy complete")


@cli.command(name="import")
@click.argument("config_file", type=click.Path(exists=True))
@click.argument("type_name")
@click.argument("name")
@click.argument("resource_id")
@click.option("--state", "state_file", default=DEFAULT_STATE, help="State file path")
@click.pass_context
def import_(ctx, config_file: str, type_name: str, name: str, resource_id: str, state_file: str):
    """
    Import an existing AWS object into state.

    Example:
        skyform import resources.yaml aws_medialive_input ingest 1234567
    """
    config = _load(ctx, config_file)
    provider = Provider(config=config.provider)
    state = StateFile.load(state_file)

    if state.get(type_name, name) is not None:
        _fail(ctx, f"{type_name}.{name} already exists in state")

    try:
        imported = provider.import_resource(type_name, resource_id)
    except SkyformError as e:
        _fail(ctx, f"{type_name}.{name}: {e}")

    state.put(type_name, name, imported)
    state.save()
    click.echo(f"✓ Imported {type_name}.{name}")
    if ctx.obj.get("debug"):
        click.echo(json.dumps(imported, indent=2, sort_keys=True))


def _load(ctx, config_file: str):
    try:
        return load_config(config_file)
    except (ValueError, OSError) as e:
        _fail(ctx, f"Could not load {config_file}: {e}")


def _plan(ctx, provider: Provider, config, state: StateFile):
    """Yield (type_name, name, action, replace_fields), deletions last."""
    desired = {(t, n): c for t, n, c in config.instances()}

    for (type_name, name), resource_config in desired.items():
        try:
            p = provider.plan(type_name, state.get(type_name, name), resource_config)
        except SkyformError as e:
            _fail(ctx, f"{type_name}.{name}: {e}")
        yield type_name, name, p.action, p.replace_fields

    for type_name, name, current in state.entries():
        if (type_name, name) not in desired:
            try:
                p = provider.plan(type_name, current, None)
            except SkyformError as e:
                _fail(ctx, f"{type_name}.{name}: {e}")
            yield type_name, name, p.action, []


def _fail(ctx, message: str):
    click.echo(f"✗ {message}", err=True)
    if ctx.obj and ctx.obj.get("debug"):
        import traceback

        traceback.print_exc()
    sys.exit(1)


if __name__ == "__main__":
    cli()
