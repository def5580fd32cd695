import typing
from typing import Any, List, Optional

from ape import chain, networks, project
from ape.api import AccountAPI
from ape.cli.choices import select_account
from ape.contracts import ContractContainer
from ape.exceptions import ApeException

from market_deployment.confirm import _confirm_resolution, _continue
from market_deployment.errors import SubmissionError, VerificationError
from market_deployment.ledger import (
    Deployment,
    LedgerClient,
    NetworkInfo,
    Receipt,
    VerifierClient,
)


def _find_in_dependencies(contract_type: str) -> ContractContainer:
    """Looks up a contract type among the project's dependencies (e.g. OpenZeppelin)."""
    for name, versions in project.dependencies.items():
        if len(versions) > 1:
            raise ValueError(f"Ambiguous {name} dependency for {contract_type}")
        dependency = next(iter(versions.values()))
        if hasattr(dependency, contract_type):
            return getattr(dependency, contract_type)
    raise ValueError(f"No contract found with name '{contract_type}'.")


def get_contract_container(contract_type: str) -> ContractContainer:
    if hasattr(project, contract_type):
        return getattr(project, contract_type)
    return _find_in_dependencies(contract_type)


def _unresolved(action: str, error: Exception) -> SubmissionError:
    # nothing was sent: the contract or method could not be looked up
    return SubmissionError(f"{action}: {error}", submitted=False)


def _submission_error(action: str, error: ApeException) -> SubmissionError:
    # a transaction attached to the error means it reached the network
    submitted = getattr(error, "txn", None) is not None
    return SubmissionError(f"{action}: {error}", submitted=submitted)


class ApeLedgerClient(LedgerClient):
    """
    Represents an ape account plus annotated transaction execution
    against the connected provider.
    """

    def __init__(self, account: typing.Optional[AccountAPI] = None, autosign: bool = False):
        if account is None:
            self._account = select_account()
        else:
            self._account = account
        if autosign:
            print("WARNING: Autosign is enabled. Transactions will be signed automatically.")
        self._autosign = autosign
        self._account.set_autosign(autosign)

    def get_account(self) -> AccountAPI:
        return self._account

    def current_account(self) -> str:
        return self._account.address

    def network_info(self) -> NetworkInfo:
        network = networks.provider.network
        return NetworkInfo(name=network.name, chain_id=networks.provider.chain_id)

    def block_number(self) -> int:
        try:
            return chain.blocks.height
        except ApeException as e:
            raise _submission_error("Reading block height", e)

    def balance(self) -> Optional[int]:
        return self._account.balance

    def confirm_deploy(self, component: str, contract_type: str, args: List[Any]) -> None:
        if not self._autosign:
            _confirm_resolution(args, component)

    def confirm_call(
        self, component: str, address: str, contract_type: str, method: str, args: List[Any]
    ) -> None:
        pretty_args = "\n\t".join(str(arg) for arg in args) or "no arguments"
        print(f"\nTransacting {contract_type}[{address[:10]}].{method} with:\n\t{pretty_args}")
        if not self._autosign:
            _continue(component)

    def deploy(self, contract_type: str, args: List[Any]) -> Deployment:
        try:
            container = get_contract_container(contract_type)
        except (ValueError, ApeException) as e:
            raise _unresolved(f"Deploying {contract_type}", e)
        try:
            instance = self._account.deploy(container, *args, publish=False)
        except ApeException as e:
            raise _submission_error(f"Deploying {contract_type}", e)

        receipt = instance.receipt
        return Deployment(
            address=instance.address,
            block_number=receipt.block_number,
            tx_hash=receipt.txn_hash,
        )

    def call(self, address: str, contract_type: str, method: str, args: List[Any]) -> Receipt:
        action = f"Calling {contract_type}.{method}"
        try:
            instance = get_contract_container(contract_type).at(address)
            handler = getattr(instance, method)
        except (ValueError, AttributeError, ApeException) as e:
            raise _unresolved(action, e)
        try:
            receipt = handler(*args, sender=self._account)
        except ApeException as e:
            raise _submission_error(action, e)
        return Receipt(tx_hash=receipt.txn_hash, block_number=receipt.block_number)


class ApeExplorerVerifier(VerifierClient):
    """Publishes contract sources through the connected network's explorer plugin."""

    def __init__(self):
        self.explorer = networks.provider.network.explorer
        if self.explorer is None:
            raise VerificationError(
                f"No explorer plugin configured for {networks.provider.network.name}; "
                "is ape-etherscan installed?"
            )

    def submit(self, address: str, constructor_args: List[Any]) -> None:
        # the explorer plugin recovers constructor arguments from the creation transaction
        try:
            self.explorer.publish_contract(address)
        except ApeException as e:
            raise VerificationError(str(e)) from e
