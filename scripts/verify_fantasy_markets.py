import click
from ape import networks
from ape.cli import ConnectedProviderCommand, network_option

from market_deployment.ape_ledger import ApeExplorerVerifier
from market_deployment.config import DeploymentConfig
from market_deployment.errors import DeploymentError, VerificationError
from market_deployment.manifest import ManifestWriter
from market_deployment.options import manifest_option, params_option, workers_option
from market_deployment.reporting import echo_verification_report, echo_verification_result
from market_deployment.verify import is_local_network, unavailable_report, verify_all


@click.command(cls=ConnectedProviderCommand)
@network_option(required=True)
@params_option
@manifest_option
@workers_option
@click.option(
    "--contract-name",
    "-c",
    "contract_names",
    help="Only verify these components (default: all in the manifest)",
    type=click.STRING,
    multiple=True,
)
def cli(network, params_filepath, manifest_filepath, workers, contract_names):
    """Verify the components recorded in a deployment manifest."""
    try:
        config = DeploymentConfig.from_yaml(params_filepath)
        if manifest_filepath:
            writer = ManifestWriter(manifest_filepath.parent)
            destination_key = manifest_filepath.name
        else:
            writer = ManifestWriter(config.artifacts_dir)
            destination_key = writer.destination_key(
                networks.provider.network.name, networks.provider.chain_id
            )
        record = writer.load(destination_key)
    except DeploymentError as e:
        raise click.ClickException(str(e))

    if record is None:
        raise click.ClickException(f"No manifest found at {writer.filepath(destination_key)}")
    if record.chain_id is not None and record.chain_id != networks.provider.chain_id:
        raise click.ClickException(
            f"Manifest is for chain {record.chain_id}, connected to {networks.provider.chain_id}"
        )

    unknown = [name for name in contract_names if name not in record.components]
    if unknown:
        raise click.BadParameter(f"Not in manifest: {unknown}", param_hint="--contract-name")
    if contract_names:
        components = {name: record.components[name] for name in contract_names}
        record = record._replace(components=components)

    verifier = None
    report = None
    if config.verification_enabled and not is_local_network(record.network, record.chain_id):
        try:
            verifier = ApeExplorerVerifier()
        except VerificationError as e:
            report = unavailable_report(record, str(e), on_result=echo_verification_result)
    if report is None:
        report = verify_all(
            record,
            verifier,
            api_key=config.verifier_api_key,
            max_workers=workers or config.verify_workers,
            on_result=echo_verification_result,
        )
    echo_verification_report(report)
    if not report.ok:
        raise click.ClickException(f"Verification failed for {report.failed}")


if __name__ == "__main__":
    cli()
