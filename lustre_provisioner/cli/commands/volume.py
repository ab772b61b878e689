"""
Volume management commands.
"""

import json
from typing import List, Optional

import typer

from lustre_provisioner.cli.lib.service import build_controller, request_context
from lustre_provisioner.exceptions import LustreProvisionerException
from lustre_provisioner.sku import TIB
from lustre_provisioner.volume_id import decode_volume_id

app = typer.Typer(help="Volume management commands")


def parse_parameters(values: List[str]) -> dict:
    """Parse repeated ``key=value`` options into a dict."""
    parameters = {}
    for value in values:
        key, sep, val = value.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"expected key=value, got: {value}")
        parameters[key] = val
    return parameters


@app.command()
def create(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Volume name"),
    parameter: Optional[List[str]] = typer.Option(
        None, "--parameter", "-p", help="Storage class parameter as key=value (may be repeated)"
    ),
    size_tib: float = typer.Option(0, "--size-tib", help="Requested size in TiB (0 for default)"),
    limit_tib: float = typer.Option(0, "--limit-tib", help="Size limit in TiB (0 for none)"),
):
    """
    Create a volume.

    Without mgs-ip-address a new AMLFS cluster is provisioned and this
    command waits until it is ready.
    """
    parameters = parse_parameters(parameter or [])
    try:
        controller = build_controller(ctx.obj)
        typer.echo(f"Creating volume: {name}")
        result = controller.create_volume(
            request_context(ctx.obj),
            name,
            int(size_tib * TIB),
            int(limit_tib * TIB),
            parameters,
        )
    except LustreProvisionerException as e:
        typer.echo(f"Error creating volume ({e.code.name}): {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"  Volume ID: {result.volume_id}")
    typer.echo(f"  Capacity: {result.capacity_bytes / TIB:g} TiB")
    typer.echo(f"  Context: {json.dumps(result.volume_context, sort_keys=True)}")
    typer.echo(f"Volume {name} created successfully")


@app.command()
def delete(
    ctx: typer.Context,
    volume_id: str = typer.Argument(..., help="Volume ID"),
):
    """
    Delete a volume.

    Dynamically provisioned volumes have their AMLFS cluster deleted.
    """
    try:
        controller = build_controller(ctx.obj)
        typer.echo(f"Deleting volume: {volume_id}")
        controller.delete_volume(request_context(ctx.obj), volume_id)
    except LustreProvisionerException as e:
        typer.echo(f"Error deleting volume ({e.code.name}): {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"Volume {volume_id} deleted successfully")


@app.command()
def decode(
    volume_id: str = typer.Argument(..., help="Volume ID"),
):
    """
    Show the fields encoded in a volume ID.
    """
    try:
        volume = decode_volume_id(volume_id)
    except LustreProvisionerException as e:
        typer.echo(f"Error decoding volume ID: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"Name: {volume.name}")
    typer.echo(f"Filesystem: {volume.azure_lustre_name}")
    typer.echo(f"MGS IP address: {volume.mgs_ip_address}")
    typer.echo(f"Sub-directory: {volume.sub_dir or '-'}")
    if volume.is_dynamic:
        typer.echo(f"AMLFS name: {volume.aml_filesystem_name}")
        typer.echo(f"Resource group: {volume.resource_group_name}")
    else:
        typer.echo("AMLFS name: - (static volume)")
