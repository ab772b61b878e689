"""
Subnet admission commands.
"""

import typer

from lustre_provisioner.cli.lib.service import build_controller, request_context
from lustre_provisioner.exceptions import LustreProvisionerException
from lustre_provisioner.parameters import SubnetProperties

app = typer.Typer(help="Subnet admission commands")


@app.command()
def check(
    ctx: typer.Context,
    sku_name: str = typer.Option(..., "--sku", help="SKU name"),
    capacity_tib: float = typer.Option(..., "--capacity-tib", help="Filesystem size in TiB"),
    vnet_resource_group: str = typer.Option(
        "", "--vnet-resource-group", help="Vnet resource group (default: cloud config)"
    ),
    vnet_name: str = typer.Option("", "--vnet-name", help="Vnet name (default: cloud config)"),
    subnet_name: str = typer.Option(
        "", "--subnet-name", help="Subnet name (default: cloud config)"
    ),
):
    """
    Check whether a subnet has room for a new filesystem.

    Exits with status 2 when the subnet is too small.
    """
    try:
        controller = build_controller(ctx.obj)
        subnet_info = controller.populate_subnet_properties(
            SubnetProperties(
                vnet_resource_group=vnet_resource_group,
                vnet_name=vnet_name,
                subnet_name=subnet_name,
            )
        )
        result = controller.provisioner.admission.evaluate(
            request_context(ctx.obj), subnet_info, sku_name, capacity_tib
        )
    except LustreProvisionerException as e:
        typer.echo(f"Error checking subnet ({e.code.name}): {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"Subnet: {subnet_info.subnet_id}")
    typer.echo(f"  Required IPs: {result.required}")
    typer.echo(f"  Available IPs: {result.available}")
    if not result.sufficient:
        typer.echo("Not enough IP addresses available", err=True)
        raise typer.Exit(2)
    typer.echo("Subnet has enough IP addresses available")
