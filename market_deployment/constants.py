from pathlib import Path

import market_deployment

#
# Filesystem
#

DEPLOYMENT_DIR = Path(market_deployment.__file__).parent
PROJECT_ROOT = DEPLOYMENT_DIR.parent
PARAMS_DIR = DEPLOYMENT_DIR / "constructor_params"
ARTIFACTS_DIR = PROJECT_ROOT / "deployments"
MANIFEST_SUFFIX = "-deployment.json"

#
# Networks
#

LOCAL_NETWORK_NAMES = ["local", "localhost", "hardhat"]
LOCAL_CHAIN_IDS = [31337, 1337]

ETHERSCAN_API_KEY_ENVVAR = "ETHERSCAN_API_KEY"
ORACLE_ADDRESS_ENVVAR = "ORACLE_ADDRESS"

NULL_ADDRESS = "0x" + "0" * 40

#
# Components
#

SPORTS_ORACLE = "SportsOracle"
FANTASY_TOKEN = "FantasyToken"
MARKET_FACTORY = "MarketFactory"
PREDICTION_MARKET = "FantasyPredictionMarket"
TIMELOCK = "TimelockController"
GOVERNANCE_TOKEN = "GovernanceToken"
GOVERNOR = "Governor"

ORACLE_ROLE = "ORACLE_ROLE"

#
# Defaults
#

DEFAULT_PLATFORM_FEE_BASIS_POINTS = 250  # 2.5%
DEFAULT_MIN_BET_AMOUNT = "0.01 ether"
DEFAULT_MAX_BET_AMOUNT = "100 ether"
DEFAULT_MIN_DELAY_SECONDS = 24 * 60 * 60
DEFAULT_TOKEN_NAME = "Fantasy Sports Token"
DEFAULT_TOKEN_SYMBOL = "FST"
DEFAULT_INITIAL_SUPPLY = "1000000 ether"
DEFAULT_REWARD_AMOUNT = "100000 ether"

MAX_BASIS_POINTS = 10_000

#
# Manifest
#

MANIFEST_SCHEMA_VERSION = 1
