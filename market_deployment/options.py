from pathlib import Path

import click

from market_deployment.constants import PARAMS_DIR
from market_deployment.types import ChecksumAddress, MinInt, Seconds

DEFAULT_PARAMS_FILEPATH = PARAMS_DIR / "fantasy_markets.yml"

params_option = click.option(
    "--params-filepath",
    "-p",
    help="Deployment parameters YAML file",
    type=click.Path(dir_okay=False, exists=True, path_type=Path),
    default=DEFAULT_PARAMS_FILEPATH,
    show_default=True,
)

resume_option = click.option(
    "--resume",
    help="Continue a previous run recorded in this network's manifest",
    is_flag=True,
    default=False,
)

autosign_option = click.option(
    "--autosign",
    help="Sign transactions without asking for confirmation",
    is_flag=True,
    default=False,
)

verify_option = click.option(
    "--verify/--no-verify",
    help="Verify deployed contracts on the block explorer",
    default=True,
    show_default=True,
)

max_attempts_option = click.option(
    "--max-attempts",
    help="Attempts per deployment step (overrides params file)",
    type=MinInt(1),
    required=False,
)

timeout_option = click.option(
    "--timeout",
    help="Seconds to wait for each transaction (overrides params file)",
    type=Seconds(),
    required=False,
)

oracle_address_option = click.option(
    "--oracle-address",
    help="Use an already deployed oracle instead of deploying SportsOracle",
    type=ChecksumAddress(),
    required=False,
)

manifest_option = click.option(
    "--manifest-filepath",
    "-m",
    help="Manifest file; defaults to the connected network's manifest",
    type=click.Path(dir_okay=False, exists=True, path_type=Path),
    required=False,
)

workers_option = click.option(
    "--workers",
    help="Concurrent verification submissions (overrides params file)",
    type=MinInt(1),
    required=False,
)
