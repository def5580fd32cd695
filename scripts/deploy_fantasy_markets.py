#!/usr/bin/python3

import threading

import click
from ape.cli import ConnectedProviderCommand, account_option, network_option

from market_deployment.ape_ledger import ApeExplorerVerifier, ApeLedgerClient
from market_deployment.config import DeploymentConfig
from market_deployment.deployer import Deployer, cancel_on_interrupt
from market_deployment.errors import ConfigurationError, DeploymentError
from market_deployment.options import (
    autosign_option,
    max_attempts_option,
    oracle_address_option,
    params_option,
    resume_option,
    timeout_option,
    verify_option,
)
from market_deployment.reporting import (
    echo_deployment_info,
    echo_event,
    echo_next_steps,
    echo_summary,
    echo_verification_report,
    echo_verification_result,
)


@click.command(cls=ConnectedProviderCommand)
@network_option(required=True)
@account_option()
@params_option
@resume_option
@autosign_option
@verify_option
@max_attempts_option
@timeout_option
@oracle_address_option
def cli(
    network,
    account,
    params_filepath,
    resume,
    autosign,
    verify,
    max_attempts,
    timeout,
    oracle_address,
):
    """
    Deploys the Fantasy Sports Prediction Market contracts, wires them together,
    records the result in the network's manifest and verifies the sources.

    ape run deploy_fantasy_markets --network ethereum:sepolia:infura --account <alias>
    """
    try:
        config = DeploymentConfig.from_yaml(params_filepath)
    except ConfigurationError as e:
        raise click.BadParameter(str(e), param_hint="--params-filepath")

    overrides = dict()
    if max_attempts is not None:
        overrides["max_attempts"] = max_attempts
    if timeout is not None:
        overrides["step_timeout"] = timeout
    if oracle_address is not None:
        overrides["oracle_address_override"] = oracle_address
    if not verify:
        overrides["verifier_api_key"] = None
    config = config._replace(**overrides)

    ledger = ApeLedgerClient(account=account, autosign=autosign)
    deployer = Deployer(
        config=config,
        ledger=ledger,
        listener=echo_event,
        cancel_event=threading.Event(),
    )

    echo_deployment_info(
        account=ledger.current_account(),
        network=deployer.network.name,
        chain_id=deployer.network.chain_id,
        balance=ledger.balance(),
        params_filepath=params_filepath,
        manifest_filepath=deployer.manifest_filepath,
        verify=config.verification_enabled,
        resume=resume,
    )
    if not autosign:
        click.confirm("Continue?", abort=True)

    click.echo("\nStarting Fantasy Sports Prediction Market deployment...")
    try:
        with cancel_on_interrupt(deployer.cancel_event):
            record = deployer.deploy(resume=resume)
    except ConfigurationError as e:
        raise click.ClickException(str(e))
    except DeploymentError as e:
        if getattr(e, "record", None) is not None:
            click.echo(f"Partial manifest written to {deployer.manifest_filepath}")
        raise click.ClickException(str(e))

    click.secho("\nDeployment completed successfully!", fg="green")
    echo_summary(record)
    click.echo(f"Manifest written to {deployer.manifest_filepath}")

    report = deployer.verify(
        record,
        verifier_factory=ApeExplorerVerifier,
        on_result=echo_verification_result,
    )
    echo_verification_report(report)
    echo_next_steps()


if __name__ == "__main__":
    cli()
