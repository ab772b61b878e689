#!/usr/bin/env python3
"""
Main CLI entry point using Typer.
"""

import sys
from typing import List, Optional

import typer

from lustre_provisioner.cli.commands import sku, subnet, volume
from lustre_provisioner.cli.lib.service import CliState

app = typer.Typer(
    name="lustre-provisioner",
    help="Azure Managed Lustre volume provisioning tool",
    add_completion=False,
)

# Add command groups
app.add_typer(volume.app, name="volume", help="Volume management commands")
app.add_typer(sku.app, name="sku", help="SKU capacity commands")
app.add_typer(subnet.app, name="subnet", help="Subnet admission commands")


@app.callback()
def global_options(
    ctx: typer.Context,
    config_file: Optional[List[str]] = typer.Option(
        None, "--config-file", help="Configuration file (may be repeated)"
    ),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
    fake: bool = typer.Option(
        False, "--fake", help="Use in-memory clients instead of Azure Resource Manager"
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help="Request deadline in seconds"
    ),
):
    ctx.obj = CliState(
        config_files=list(config_file or []),
        debug=debug,
        fake=fake,
        timeout=timeout,
    )


def main() -> int:
    """Main entry point."""
    try:
        app()
        return 0
    except KeyboardInterrupt:
        typer.echo("\nOperation cancelled by user", err=True)
        return 130
    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
