import click
from ape.cli import ConnectedProviderCommand, account_option, network_option

from market_deployment.ape_ledger import ApeLedgerClient
from market_deployment.config import DeploymentConfig
from market_deployment.errors import DeploymentError
from market_deployment.manifest import ManifestWriter
from market_deployment.markets import create_market, sample_market
from market_deployment.options import autosign_option, params_option


@click.command(cls=ConnectedProviderCommand)
@network_option(required=True)
@account_option()
@params_option
@autosign_option
def cli(network, account, params_filepath, autosign):
    """Create the sample NFL market on a deployed FantasyPredictionMarket."""
    config = DeploymentConfig.from_yaml(params_filepath)
    ledger = ApeLedgerClient(account=account, autosign=autosign)
    writer = ManifestWriter(config.artifacts_dir)
    network = ledger.network_info()
    destination_key = writer.destination_key(network.name, network.chain_id)
    record = writer.load(destination_key)
    if record is None:
        raise click.ClickException(f"No manifest found at {writer.filepath(destination_key)}")
    if not record.complete:
        raise click.ClickException("Deployment is incomplete; resume it before creating markets")

    market = sample_market()
    click.echo(f"Creating sample market {market.game_id}...")
    try:
        receipt = create_market(record, ledger, market)
    except DeploymentError as e:
        raise click.ClickException(str(e))
    click.secho(f"Sample market created successfully! (tx {receipt.tx_hash})", fg="green")


if __name__ == "__main__":
    cli()
