import json
import os

import pytest

from market_deployment.context import ResolutionContext, WiringRecord
from market_deployment.errors import DeploymentFailedError, ManifestError
from market_deployment.executor import Executor
from market_deployment.manifest import COMPLETE, PARTIAL, ManifestWriter, RunRecord
from market_deployment.plan import DeploymentPlan, component
from tests.conftest import DEPLOYER, StubLedger, market_components


@pytest.fixture
def record(ledger):
    components = market_components()
    components[-1] = component(
        "Market", params=["$Oracle", "$Factory", "$Token"], hooks=[("Market", "pause", [])]
    )
    return Executor().execute(DeploymentPlan(components), ledger)


def test_round_trip(writer, record):
    key = writer.destination_key(record.network)
    writer.persist(record, key)
    loaded = writer.load(key)

    assert loaded.addresses() == record.addresses()
    assert loaded.components == record.components
    assert loaded.wiring == record.wiring
    assert loaded.network == "sepolia"
    assert loaded.chain_id == 11155111
    assert loaded.deployer == record.deployer
    assert loaded.timestamp == record.timestamp
    assert loaded.block_number == record.block_number
    assert loaded.status == COMPLETE


def test_destination_key_is_network_scoped(writer):
    assert writer.destination_key("sepolia") == "sepolia-deployment.json"
    assert writer.destination_key("sepolia", 11155111) == "sepolia-11155111-deployment.json"
    assert writer.destination_key("sepolia") != writer.destination_key("mainnet")
    with pytest.raises(ManifestError):
        writer.destination_key("../mainnet")


def test_manifests_for_distinct_networks_do_not_collide(writer, record):
    writer.persist(record, writer.destination_key("sepolia"))
    writer.persist(record._replace(network="mainnet"), writer.destination_key("mainnet"))
    assert writer.destination_keys() == ["mainnet-deployment.json", "sepolia-deployment.json"]
    assert writer.load("sepolia-deployment.json").network == "sepolia"


def test_networks_sharing_a_name_do_not_collide(writer, record):
    # e.g. ethereum:sepolia and arbitrum:sepolia
    ethereum_key = writer.destination_key("sepolia", 11155111)
    arbitrum_key = writer.destination_key("sepolia", 421614)
    assert ethereum_key != arbitrum_key

    writer.persist(record, ethereum_key)
    writer.persist(record._replace(chain_id=421614), arbitrum_key)
    assert writer.load(ethereum_key).chain_id == 11155111
    assert writer.load(arbitrum_key).chain_id == 421614


def test_load_missing(writer):
    assert writer.load("sepolia-deployment.json") is None


def test_partial_record_round_trip(writer):
    with pytest.raises(DeploymentFailedError) as exc_info:
        Executor().execute(DeploymentPlan(market_components()), StubLedger(fail_on=[3]))
    partial = exc_info.value.record
    writer.persist(partial, "sepolia-deployment.json")

    loaded = writer.load("sepolia-deployment.json")
    assert loaded.status == PARTIAL
    assert list(loaded.components) == ["Oracle", "Token"]
    assert "Factory failed during deploy" in loaded.failure


def test_manifest_layout(writer, record):
    filepath = writer.persist(record, "sepolia-deployment.json")
    data = json.loads(filepath.read_text())

    assert data["schema_version"] == 1
    assert data["contracts"]["Factory"] == {
        "contract_type": "Factory",
        "address": "addr-3",
        "block_number": 3,
        "tx_hash": "0x" + "0" * 63 + "3",
        "constructor_args": ["addr-1", 250],
    }
    assert data["wiring"] == [
        {"component": "Market", "hook": "Market.pause", "tx_hash": "0x" + "0" * 63 + "5"}
    ]
    assert filepath.read_text().startswith('{\n    "schema_version": 1,')


def test_bytes_arguments_are_hex_encoded(writer, record):
    market = record.components["Market"]._replace(constructor_args=[b"\x01\x02"])
    record.components["Market"] = market
    writer.persist(record, "sepolia-deployment.json")
    loaded = writer.load("sepolia-deployment.json")
    assert loaded.components["Market"].constructor_args == ["0x0102"]


def test_unknown_fields_are_ignored(writer):
    manifest = {
        "schema_version": 1,
        "network": "sepolia",
        "frontend_url": "https://example.org",
        "contracts": {"Oracle": {"address": "0x01", "verified": True}},
    }
    writer.filepath("sepolia-deployment.json").parent.mkdir(parents=True)
    writer.filepath("sepolia-deployment.json").write_text(json.dumps(manifest))

    loaded = writer.load("sepolia-deployment.json")
    assert loaded.addresses() == {"Oracle": "0x01"}
    # missing optional fields default
    assert loaded.components["Oracle"].constructor_args == []
    assert loaded.components["Oracle"].contract_type == "Oracle"
    assert loaded.chain_id is None
    assert loaded.wiring == []
    assert loaded.external == {}
    assert loaded.status == COMPLETE


def test_newer_schema_is_rejected(writer):
    writer.directory.mkdir(parents=True)
    writer.filepath("sepolia-deployment.json").write_text(
        json.dumps({"schema_version": 2, "network": "sepolia"})
    )
    with pytest.raises(ManifestError, match="newer"):
        writer.load("sepolia-deployment.json")


@pytest.mark.parametrize("content", ["{not json", "[]", '{"contracts": {}}'])
def test_malformed_manifest(writer, content):
    writer.directory.mkdir(parents=True)
    writer.filepath("sepolia-deployment.json").write_text(content)
    with pytest.raises(ManifestError):
        writer.load("sepolia-deployment.json")


def test_failed_write_keeps_previous_manifest(writer, record, monkeypatch):
    key = "sepolia-deployment.json"
    writer.persist(record, key)
    before = writer.filepath(key).read_text()

    def broken_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr(os, "replace", broken_replace)
    with pytest.raises(OSError):
        writer.persist(record._replace(components={}), key)

    assert writer.filepath(key).read_text() == before
    assert os.listdir(writer.directory) == [key]


def test_wiring_records_round_trip(writer, record):
    extra = record.wiring + [WiringRecord(component="Market", label="Token.transfer")]
    writer.persist(record._replace(wiring=extra), "sepolia-deployment.json")
    loaded = writer.load("sepolia-deployment.json")
    assert loaded.wiring[-1] == WiringRecord(component="Market", label="Token.transfer", tx_hash=None)


def test_records_do_not_share_mutable_fields():
    context = ResolutionContext(deployer=DEPLOYER, external={"Oracle": "0xoracle"})
    first = RunRecord.from_context(context, network="sepolia")
    second = RunRecord.from_context(context, network="sepolia")

    first.external["Token"] = "0xtoken"
    first.wiring.append(WiringRecord(component="Market", label="Market.pause"))
    assert second.external == {"Oracle": "0xoracle"}
    assert second.wiring == []
    assert context.wiring == []
