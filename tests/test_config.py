import pytest
import yaml
from eth_utils import to_checksum_address

from market_deployment.config import DeploymentConfig, parse_amount
from market_deployment.constants import ARTIFACTS_DIR
from market_deployment.errors import ConfigurationError
from market_deployment.options import DEFAULT_PARAMS_FILEPATH

ETHER = 10**18
ORACLE = "0xd8da6bf26964af9d7eed9e03e53415d37aa96045"


def write_params(tmp_path, data):
    filepath = tmp_path / "params.yml"
    filepath.write_text(yaml.safe_dump(data))
    return filepath


def test_defaults():
    config = DeploymentConfig()
    assert config.platform_fee_basis_points == 250
    assert config.min_bet_amount == ETHER // 100
    assert config.max_bet_amount == 100 * ETHER
    assert config.min_delay_seconds == 86400
    assert config.token_name == "Fantasy Sports Token"
    assert config.token_symbol == "FST"
    assert config.initial_supply == 1_000_000 * ETHER
    assert config.reward_amount == 100_000 * ETHER
    assert config.oracle_address_override is None
    assert config.max_attempts == 1
    assert config.step_timeout is None
    assert not config.verification_enabled
    assert config.artifacts_dir == ARTIFACTS_DIR


def test_shipped_params_file():
    config = DeploymentConfig.from_yaml(DEFAULT_PARAMS_FILEPATH, environ={})
    assert config._replace(artifacts_dir=ARTIFACTS_DIR) == DeploymentConfig()


@pytest.mark.parametrize(
    "value,expected",
    [
        (5, 5),
        ("5", 5),
        ("0.01 ether", ETHER // 100),
        ("1000000 ether", 1_000_000 * ETHER),
        ("3 gwei", 3 * 10**9),
        ("1 Ether", ETHER),
    ],
)
def test_parse_amount(value, expected):
    assert parse_amount(value, "amount") == expected


@pytest.mark.parametrize("value", ["lots", "1 banana", "1 2 3", -1, True, 1.5, None])
def test_parse_invalid_amount(value):
    with pytest.raises(ConfigurationError):
        parse_amount(value, "amount")


def test_from_yaml(tmp_path):
    filepath = write_params(
        tmp_path,
        {
            "platform_fee_basis_points": 100,
            "min_bet_amount": "1 ether",
            "max_bet_amount": "2 ether",
            "token_symbol": "FAN",
            "max_attempts": 2,
            "step_timeout": 30,
            "verify_workers": 4,
            "artifacts_dir": "out",
        },
    )
    config = DeploymentConfig.from_yaml(filepath, environ={})
    assert config.platform_fee_basis_points == 100
    assert config.min_bet_amount == ETHER
    assert config.max_bet_amount == 2 * ETHER
    assert config.token_symbol == "FAN"
    assert config.token_name == "Fantasy Sports Token"
    assert config.max_attempts == 2
    assert config.step_timeout == 30.0
    assert config.verify_workers == 4
    # relative to the params file
    assert config.artifacts_dir == tmp_path / "out"


def test_environment_overrides(tmp_path):
    filepath = write_params(tmp_path, {})
    environ = {"ETHERSCAN_API_KEY": "KEY", "ORACLE_ADDRESS": ORACLE}
    config = DeploymentConfig.from_yaml(filepath, environ=environ)
    assert config.verifier_api_key == "KEY"
    assert config.verification_enabled
    assert config.oracle_address_override == to_checksum_address(ORACLE)


def test_params_file_wins_over_environment(tmp_path):
    filepath = write_params(tmp_path, {"verifier_api_key": "FROM_FILE"})
    config = DeploymentConfig.from_yaml(filepath, environ={"ETHERSCAN_API_KEY": "FROM_ENV"})
    assert config.verifier_api_key == "FROM_FILE"


def test_empty_params_file(tmp_path):
    filepath = tmp_path / "params.yml"
    filepath.write_text("")
    assert DeploymentConfig.from_yaml(filepath, environ={}).token_symbol == "FST"


@pytest.mark.parametrize(
    "data,message",
    [
        ({"platform_fee": 250}, "Unrecognized"),
        ({"platform_fee_basis_points": 10_001}, "exceeds"),
        ({"platform_fee_basis_points": -1}, "at least"),
        ({"min_bet_amount": "2 ether", "max_bet_amount": "1 ether"}, "greater than"),
        ({"reward_amount": "2 ether", "initial_supply": "1 ether"}, "exceeds"),
        ({"oracle_address_override": "0x1234"}, "not a valid address"),
        ({"max_attempts": 0}, "at least"),
        ({"min_delay_seconds": "1 day"}, "integer"),
        ({"step_timeout": 0}, "positive"),
        ({"token_name": ""}, "non-empty"),
    ],
)
def test_invalid_options(data, message):
    with pytest.raises(ConfigurationError, match=message):
        DeploymentConfig.from_dict(data)


def test_malformed_params_file(tmp_path):
    filepath = tmp_path / "params.yml"
    filepath.write_text("- just\n- a list\n")
    with pytest.raises(ConfigurationError, match="Malformed"):
        DeploymentConfig.from_yaml(filepath, environ={})
