import json
import os
import tempfile
import typing
from collections import OrderedDict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from eth_utils import to_hex

from market_deployment.constants import MANIFEST_SCHEMA_VERSION, MANIFEST_SUFFIX
from market_deployment.context import DeployedComponent, ResolutionContext, WiringRecord
from market_deployment.errors import ManifestError

STANDARD_MANIFEST_JSON_FORMAT = {"indent": 4, "separators": (",", ": ")}

COMPLETE = "complete"
PARTIAL = "partial"


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


class RunRecord(typing.NamedTuple):
    """The durable outcome of a deployment run for one network."""

    network: str
    chain_id: Optional[int]
    deployer: Optional[str]
    timestamp: str
    block_number: Optional[int]
    components: "OrderedDict[str, DeployedComponent]"
    external: Dict[str, str]
    wiring: List[WiringRecord]
    status: str = PARTIAL
    failure: Optional[str] = None
    schema_version: int = MANIFEST_SCHEMA_VERSION

    @classmethod
    def from_context(
        cls,
        context: ResolutionContext,
        network: str,
        chain_id: Optional[int] = None,
        block_number: Optional[int] = None,
        status: str = PARTIAL,
        failure: Optional[str] = None,
    ) -> "RunRecord":
        return cls(
            network=network,
            chain_id=chain_id,
            deployer=context.deployer,
            timestamp=utc_timestamp(),
            block_number=block_number,
            components=context.snapshot(),
            external=dict(context.external),
            wiring=context.wiring,
            status=status,
            failure=failure,
        )

    @property
    def complete(self) -> bool:
        return self.status == COMPLETE

    def addresses(self) -> "OrderedDict[str, str]":
        return OrderedDict((name, c.address) for name, c in self.components.items())


def _json_default(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return to_hex(value)
    raise TypeError(f"{type(value).__name__} is not JSON serializable")


def _record_to_dict(record: RunRecord) -> Dict[str, Any]:
    return {
        "schema_version": record.schema_version,
        "network": record.network,
        "chain_id": record.chain_id,
        "deployer": record.deployer,
        "timestamp": record.timestamp,
        "block_number": record.block_number,
        "status": record.status,
        "failure": record.failure,
        "contracts": {
            name: {
                "contract_type": c.contract_type,
                "address": c.address,
                "block_number": c.block_number,
                "tx_hash": c.tx_hash,
                "constructor_args": c.constructor_args,
            }
            for name, c in record.components.items()
        },
        "external": dict(record.external),
        "wiring": [
            {"component": w.component, "hook": w.label, "tx_hash": w.tx_hash}
            for w in record.wiring
        ],
    }


def _record_from_dict(data: Dict[str, Any]) -> RunRecord:
    """Builds a record from manifest data; unknown fields are ignored."""
    version = data.get("schema_version", MANIFEST_SCHEMA_VERSION)
    if not isinstance(version, int):
        raise ManifestError(f"Invalid manifest schema version {version!r}")
    if version > MANIFEST_SCHEMA_VERSION:
        raise ManifestError(
            f"Manifest schema version {version} is newer than supported "
            f"({MANIFEST_SCHEMA_VERSION})"
        )
    try:
        components = OrderedDict()
        for name, artifacts in data.get("contracts", {}).items():
            components[name] = DeployedComponent(
                name=name,
                contract_type=artifacts.get("contract_type", name),
                address=artifacts["address"],
                block_number=artifacts.get("block_number"),
                constructor_args=artifacts.get("constructor_args", []),
                tx_hash=artifacts.get("tx_hash"),
            )
        wiring = [
            WiringRecord(component=w["component"], label=w["hook"], tx_hash=w.get("tx_hash"))
            for w in data.get("wiring", [])
        ]
        return RunRecord(
            network=data["network"],
            chain_id=data.get("chain_id"),
            deployer=data.get("deployer"),
            timestamp=data.get("timestamp"),
            block_number=data.get("block_number"),
            components=components,
            external=dict(data.get("external", {})),
            wiring=wiring,
            status=data.get("status", COMPLETE),
            failure=data.get("failure"),
            schema_version=version,
        )
    except (KeyError, TypeError, AttributeError) as e:
        raise ManifestError(f"Malformed manifest: {e!r}") from e


def _atomic_write_text(path: Path, content: str) -> None:
    """Writes to a temporary file in the same directory, then renames into place."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w") as file:
            file.write(content)
            file.flush()
            os.fsync(file.fileno())
        os.replace(tmp_path, str(path))
    except BaseException:
        Path(tmp_path).unlink(missing_ok=True)
        raise


class ManifestWriter:
    """Persists run records as JSON files keyed by network name and chain id."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    @staticmethod
    def destination_key(network: str, chain_id: Optional[int] = None) -> str:
        """
        Network names repeat across ecosystems (e.g. ethereum:sepolia and
        arbitrum:sepolia), so the chain id is part of the key when known.
        """
        if not network or "/" in network or "\\" in network:
            raise ManifestError(f"Invalid network name for a manifest: {network!r}")
        if chain_id is None:
            return f"{network}{MANIFEST_SUFFIX}"
        return f"{network}-{int(chain_id)}{MANIFEST_SUFFIX}"

    def filepath(self, destination_key: str) -> Path:
        return self.directory / destination_key

    def destination_keys(self) -> List[str]:
        """Keys of every manifest in the directory."""
        if not self.directory.exists():
            return []
        return sorted(p.name for p in self.directory.glob(f"*{MANIFEST_SUFFIX}"))

    def persist(self, record: RunRecord, destination_key: str) -> Path:
        filepath = self.filepath(destination_key)
        content = json.dumps(
            _record_to_dict(record), default=_json_default, **STANDARD_MANIFEST_JSON_FORMAT
        )
        _atomic_write_text(filepath, content + "\n")
        return filepath

    def load(self, destination_key: str) -> Optional[RunRecord]:
        """Returns the persisted record, or None when there is none."""
        filepath = self.filepath(destination_key)
        if not filepath.exists():
            return None
        try:
            with open(filepath, "r") as file:
                data = json.load(file)
        except json.JSONDecodeError as e:
            raise ManifestError(f"Manifest at {filepath} is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ManifestError(f"Manifest at {filepath} is malformed.")
        return _record_from_dict(data)
