"""
SKU capacity commands.
"""

from typing import Optional

import typer

from lustre_provisioner.cli.lib.service import build_controller, request_context
from lustre_provisioner.exceptions import LustreProvisionerException
from lustre_provisioner.sku import TIB, round_up_to_increment

app = typer.Typer(help="SKU capacity commands")


@app.command("list")
def list_skus(
    ctx: typer.Context,
    location: Optional[str] = typer.Option(
        None, "--location", help="Azure location (default: cloud config location)"
    ),
):
    """
    List the SKUs available in a location with their capacity limits.
    """
    try:
        controller = build_controller(ctx.obj)
        location = location or controller.get_cloud_config().location
        values = controller.provisioner.get_sku_values_for_location(
            request_context(ctx.obj), location
        )
    except LustreProvisionerException as e:
        typer.echo(f"Error listing SKUs: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"SKUs for location {location}:")
    for name in sorted(values):
        value = values[name]
        typer.echo(
            f"  {name}: increment {value.increment_tib} TiB, maximum {value.maximum_tib} TiB"
        )


@app.command("round")
def round_capacity(
    ctx: typer.Context,
    sku_name: str = typer.Argument(..., help="SKU name"),
    size_tib: float = typer.Argument(..., help="Requested size in TiB"),
    location: Optional[str] = typer.Option(
        None, "--location", help="Azure location (default: cloud config location)"
    ),
):
    """
    Show the capacity a request would be rounded up to.
    """
    try:
        controller = build_controller(ctx.obj)
        location = location or controller.get_cloud_config().location
        values = controller.provisioner.get_sku_values_for_location(
            request_context(ctx.obj), location
        )
        rounded = round_up_to_increment(int(size_tib * TIB), sku_name, values)
    except LustreProvisionerException as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"{size_tib:g} TiB rounds up to {rounded / TIB:g} TiB for SKU {sku_name}")
