#!/usr/bin/python3

from pathlib import Path

import click

from market_deployment.constants import ARTIFACTS_DIR
from market_deployment.errors import ManifestError
from market_deployment.manifest import ManifestWriter

STATUS_COLORS = {"complete": "green", "partial": "yellow"}


@click.command(name="list-deployments")
@click.option(
    "--artifacts-dir",
    "-a",
    help="Directory holding the deployment manifests",
    type=click.Path(file_okay=False, path_type=Path),
    default=ARTIFACTS_DIR,
    show_default=True,
)
def cli(artifacts_dir):
    """List every recorded deployment and its components."""
    writer = ManifestWriter(artifacts_dir)
    keys = writer.destination_keys()
    if not keys:
        click.echo(f"No deployments recorded in {artifacts_dir}")
        return

    for key in keys:
        try:
            record = writer.load(key)
        except ManifestError as e:
            click.secho(f"\n{key}: {e}", fg="red")
            continue
        color = STATUS_COLORS.get(record.status, "red")
        click.secho(f"\n{record.network} (chain {record.chain_id})", fg="green")
        click.secho(f"    {record.status} at block {record.block_number}, {record.timestamp}", fg=color)
        if record.failure:
            click.secho(f"    {record.failure}", fg="red")
        for index, (name, address) in enumerate(record.addresses().items(), start=1):
            click.secho(f"        {index}. {name} {address}", fg="cyan")
        for name, address in record.external.items():
            click.secho(f"        -  {name} {address} (external)", fg="cyan")


if __name__ == "__main__":
    cli()
