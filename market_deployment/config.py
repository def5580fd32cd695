import os
import typing
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from eth_utils import is_address, to_checksum_address
from web3 import Web3

from market_deployment.constants import (
    ARTIFACTS_DIR,
    DEFAULT_INITIAL_SUPPLY,
    DEFAULT_MAX_BET_AMOUNT,
    DEFAULT_MIN_BET_AMOUNT,
    DEFAULT_MIN_DELAY_SECONDS,
    DEFAULT_PLATFORM_FEE_BASIS_POINTS,
    DEFAULT_REWARD_AMOUNT,
    DEFAULT_TOKEN_NAME,
    DEFAULT_TOKEN_SYMBOL,
    ETHERSCAN_API_KEY_ENVVAR,
    MAX_BASIS_POINTS,
    ORACLE_ADDRESS_ENVVAR,
)
from market_deployment.errors import ConfigurationError


def _load_yaml(filepath: Path) -> dict:
    """Loads a YAML file."""
    with open(filepath, "r") as file:
        return yaml.safe_load(file) or dict()


def parse_amount(value: Any, name: str) -> int:
    """
    Converts a token/ether amount to wei.

    Integers are taken as wei; strings may carry a unit, e.g. "0.01 ether".
    """
    if isinstance(value, bool):
        raise ConfigurationError(f"'{name}' must be an amount, got {value!r}")
    if isinstance(value, int):
        amount = value
    elif isinstance(value, str):
        parts = value.split()
        if len(parts) == 1:
            number, unit = parts[0], "wei"
        elif len(parts) == 2:
            number, unit = parts
        else:
            raise ConfigurationError(f"'{name}' is not a valid amount: {value!r}")
        try:
            amount = Web3.to_wei(Decimal(number), unit.lower())
        except (InvalidOperation, ValueError) as e:
            raise ConfigurationError(f"'{name}' is not a valid amount: {value!r}") from e
    else:
        raise ConfigurationError(f"'{name}' must be an amount, got {value!r}")

    if amount < 0:
        raise ConfigurationError(f"'{name}' cannot be negative")
    return int(amount)


def _parse_int(value: Any, name: str, min_value: int = 0) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"'{name}' must be an integer, got {value!r}")
    if value < min_value:
        raise ConfigurationError(f"'{name}' must be at least {min_value}, got {value}")
    return value


def _parse_address(value: Any, name: str) -> str:
    if not isinstance(value, str) or not is_address(value):
        raise ConfigurationError(f"'{name}' is not a valid address: {value!r}")
    return to_checksum_address(value)


class DeploymentConfig(typing.NamedTuple):
    """Validated options consumed once when the deployment plan is built."""

    verifier_api_key: Optional[str] = None
    min_delay_seconds: int = DEFAULT_MIN_DELAY_SECONDS
    platform_fee_basis_points: int = DEFAULT_PLATFORM_FEE_BASIS_POINTS
    min_bet_amount: int = parse_amount(DEFAULT_MIN_BET_AMOUNT, "min_bet_amount")
    max_bet_amount: int = parse_amount(DEFAULT_MAX_BET_AMOUNT, "max_bet_amount")
    token_name: str = DEFAULT_TOKEN_NAME
    token_symbol: str = DEFAULT_TOKEN_SYMBOL
    initial_supply: int = parse_amount(DEFAULT_INITIAL_SUPPLY, "initial_supply")
    reward_amount: int = parse_amount(DEFAULT_REWARD_AMOUNT, "reward_amount")
    oracle_address_override: Optional[str] = None
    max_attempts: int = 1
    step_timeout: Optional[float] = None
    verify_workers: int = 1
    artifacts_dir: Path = ARTIFACTS_DIR

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeploymentConfig":
        unknown = set(data) - set(cls._fields)
        if unknown:
            raise ConfigurationError(f"Unrecognized configuration options: {sorted(unknown)}")

        values = dict()
        for name in ("min_bet_amount", "max_bet_amount", "initial_supply", "reward_amount"):
            if data.get(name) is not None:
                values[name] = parse_amount(data[name], name)
        for name in ("token_name", "token_symbol", "verifier_api_key"):
            if data.get(name) is not None:
                if not isinstance(data[name], str) or not data[name].strip():
                    raise ConfigurationError(f"'{name}' must be a non-empty string")
                values[name] = data[name]
        if data.get("min_delay_seconds") is not None:
            values["min_delay_seconds"] = _parse_int(data["min_delay_seconds"], "min_delay_seconds")
        if data.get("platform_fee_basis_points") is not None:
            values["platform_fee_basis_points"] = _parse_int(
                data["platform_fee_basis_points"], "platform_fee_basis_points"
            )
        if data.get("max_attempts") is not None:
            values["max_attempts"] = _parse_int(data["max_attempts"], "max_attempts", min_value=1)
        if data.get("verify_workers") is not None:
            values["verify_workers"] = _parse_int(
                data["verify_workers"], "verify_workers", min_value=1
            )
        if data.get("step_timeout") is not None:
            timeout = data["step_timeout"]
            if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
                raise ConfigurationError(f"'step_timeout' must be a positive number, got {timeout!r}")
            values["step_timeout"] = float(timeout)
        if data.get("oracle_address_override") is not None:
            values["oracle_address_override"] = _parse_address(
                data["oracle_address_override"], "oracle_address_override"
            )
        if data.get("artifacts_dir") is not None:
            values["artifacts_dir"] = Path(data["artifacts_dir"])

        config = cls(**values)
        config.validate()
        return config

    @classmethod
    def from_yaml(cls, filepath: Path, environ: Optional[Dict[str, str]] = None) -> "DeploymentConfig":
        """
        Loads the configuration from a params file.
        The verifier API key and the oracle override may also come from the environment.
        """
        data = _load_yaml(filepath)
        if not isinstance(data, dict):
            raise ConfigurationError(f"Malformed params file {filepath}.")
        environ = os.environ if environ is None else environ

        api_key = environ.get(ETHERSCAN_API_KEY_ENVVAR)
        if api_key and not data.get("verifier_api_key"):
            data["verifier_api_key"] = api_key

        oracle_address = environ.get(ORACLE_ADDRESS_ENVVAR)
        if oracle_address and not data.get("oracle_address_override"):
            data["oracle_address_override"] = oracle_address

        artifacts_dir = data.get("artifacts_dir")
        if artifacts_dir is not None and not Path(artifacts_dir).is_absolute():
            data["artifacts_dir"] = Path(filepath).parent / artifacts_dir

        return cls.from_dict(data)

    def validate(self) -> None:
        if self.platform_fee_basis_points > MAX_BASIS_POINTS:
            raise ConfigurationError(
                f"platform_fee_basis_points ({self.platform_fee_basis_points}) "
                f"exceeds {MAX_BASIS_POINTS}"
            )
        if self.min_bet_amount > self.max_bet_amount:
            raise ConfigurationError(
                f"min_bet_amount ({self.min_bet_amount}) is greater than "
                f"max_bet_amount ({self.max_bet_amount})"
            )
        if self.reward_amount > self.initial_supply:
            raise ConfigurationError(
                f"reward_amount ({self.reward_amount}) exceeds initial_supply "
                f"({self.initial_supply})"
            )

    @property
    def verification_enabled(self) -> bool:
        return bool(self.verifier_api_key)
