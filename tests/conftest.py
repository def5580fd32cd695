import pytest

from market_deployment.config import DeploymentConfig
from market_deployment.errors import SubmissionError, VerificationError
from market_deployment.ledger import Deployment, LedgerClient, NetworkInfo, Receipt, VerifierClient
from market_deployment.manifest import ManifestWriter
from market_deployment.plan import component

# Common constants
DEPLOYER = "0x00000000000000000000000000000000000000d1"
SEPOLIA = NetworkInfo(name="sepolia", chain_id=11155111)
LOCAL = NetworkInfo(name="local", chain_id=31337)


class StubLedger(LedgerClient):
    """
    Hands out `<prefix>-1`, `<prefix>-2`, ... for successful deployments.
    Submissions (deployments and calls) listed in `fail_on` (1-based) are rejected.
    """

    def __init__(self, prefix="addr", fail_on=(), submitted=True, network=SEPOLIA, account=DEPLOYER):
        self.prefix = prefix
        self.fail_on = set(fail_on)
        self.submitted = submitted
        self.network = network
        self.account = account
        self.submissions = 0
        self.deployed = 0
        self.deployments = list()
        self.calls = list()

    def _submit(self):
        self.submissions += 1
        if self.submissions in self.fail_on:
            raise SubmissionError(
                f"submission {self.submissions} rejected", submitted=self.submitted
            )

    def deploy(self, contract_type, args):
        self._submit()
        self.deployed += 1
        self.deployments.append((contract_type, list(args)))
        return Deployment(
            address=f"{self.prefix}-{self.deployed}",
            block_number=self.submissions,
            tx_hash=f"0x{self.submissions:064x}",
        )

    def call(self, address, contract_type, method, args):
        self._submit()
        self.calls.append((address, contract_type, method, list(args)))
        return Receipt(tx_hash=f"0x{self.submissions:064x}", block_number=self.submissions)

    def current_account(self):
        return self.account

    def network_info(self):
        return self.network

    def block_number(self):
        return 1000 + self.submissions

    def balance(self):
        return 10**18


class StubVerifier(VerifierClient):
    def __init__(self, rejected=()):
        self.rejected = set(rejected)
        self.submitted = list()

    def submit(self, address, constructor_args):
        self.submitted.append((address, list(constructor_args)))
        if address in self.rejected:
            raise VerificationError(f"{address} bytecode does not match")


# Utility functions
def market_components():
    """Oracle and Token have no dependencies; Factory needs Oracle; Market needs all three."""
    return [
        component("Oracle"),
        component("Token", params=["Fantasy", "FST", 1000]),
        component("Factory", params=["$Oracle", 250]),
        component("Market", params=["$Oracle", "$Factory", "$Token"]),
    ]


# Fixtures
@pytest.fixture
def ledger():
    return StubLedger()


@pytest.fixture
def verifier():
    return StubVerifier()


@pytest.fixture
def config(tmp_path):
    return DeploymentConfig(artifacts_dir=tmp_path / "deployments")


@pytest.fixture
def writer(tmp_path):
    return ManifestWriter(tmp_path / "deployments")
