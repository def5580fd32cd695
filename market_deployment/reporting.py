from typing import Optional

import click
from web3 import Web3

from market_deployment.executor import (
    ATTEMPT_FAILED,
    COMPONENT_DEPLOYED,
    HOOK_COMPLETED,
    HOOK_SKIPPED,
    STEP_SKIPPED,
    STEP_STARTED,
    DeploymentEvent,
)
from market_deployment.manifest import RunRecord
from market_deployment.verify import FAILED, VERIFIED, VerificationReport, VerificationResult

NEXT_STEPS = [
    "Update frontend config with deployed addresses",
    "Set up sports data feeds in the oracle",
    "Create initial prediction markets",
    "Configure governance parameters",
    "Transfer ownership to timelock/governance",
]


def echo_event(event: DeploymentEvent) -> None:
    """Renders executor events on the console."""
    detail = event.detail
    if event.kind == STEP_STARTED:
        click.echo(f"\nDeploying {event.component} ({detail['contract_type']})...")
    elif event.kind == COMPONENT_DEPLOYED:
        click.secho(f"{event.component} deployed to: {detail['address']}", fg="green")
    elif event.kind == STEP_SKIPPED:
        click.echo(f"(i) {event.component} already deployed at {detail['address']}; skipping")
    elif event.kind == HOOK_COMPLETED:
        click.echo(f"✓ {detail['hook']}")
    elif event.kind == HOOK_SKIPPED:
        click.echo(f"(i) {detail['hook']} already done; skipping")
    elif event.kind == ATTEMPT_FAILED:
        click.secho(
            f"! {detail['operation']} attempt {detail['attempt']} failed: {detail['error']}",
            fg="yellow",
        )


def echo_deployment_info(
    account: str,
    network: str,
    chain_id: Optional[int],
    balance: Optional[int],
    params_filepath,
    manifest_filepath,
    verify: bool,
    resume: bool,
) -> None:
    formatted_balance = "unknown" if balance is None else f"{Web3.from_wei(balance, 'ether')} ETH"
    click.echo(
        "\n".join(
            [
                f"Account: {account}",
                f"Balance: {formatted_balance}",
                f"Params: {params_filepath}",
                f"Manifest: {manifest_filepath}",
                f"Verify: {verify}",
                f"Resume: {resume}",
                f"Network: {network}",
                f"Chain ID: {chain_id}",
            ]
        )
    )


def echo_summary(record: RunRecord) -> None:
    rows = list(record.addresses().items())
    rows.extend(record.external.items())
    rows.append(("Deployer", record.deployer))
    rows.append(("Network", record.network))

    click.secho("\nDEPLOYMENT SUMMARY:", bold=True)
    click.echo("=" * 69)
    for name, value in rows:
        click.echo(f"{name:<25}: {value}")
    click.echo("=" * 69)


def echo_verification_result(name: str, result: VerificationResult) -> None:
    if result.status == VERIFIED:
        click.secho(f"✓ {name} verified", fg="green")
    elif result.status == FAILED:
        click.secho(f"✗ {name} verification failed: {result.reason}", fg="red")


def echo_verification_report(report: VerificationReport) -> None:
    if report and len(report.skipped) == len(report):
        reason = next(iter(report.values())).reason
        click.echo(f"(i) Verification skipped ({reason})")
        return

    click.echo(
        f"\nVerification: {len(report.verified)} verified, "
        f"{len(report.failed)} failed, {len(report.skipped)} skipped"
    )
    for name in report.failed:
        click.secho(f"  {name}: {report[name].reason}", fg="red")


def echo_next_steps() -> None:
    click.echo("\nNEXT STEPS:")
    for number, step in enumerate(NEXT_STEPS, start=1):
        click.echo(f"{number}. {step}")
