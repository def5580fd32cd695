import typing
from abc import ABC, abstractmethod
from typing import Any, List, Optional


class Deployment(typing.NamedTuple):
    address: str
    block_number: Optional[int] = None
    tx_hash: Optional[str] = None


class Receipt(typing.NamedTuple):
    tx_hash: Optional[str] = None
    block_number: Optional[int] = None


class NetworkInfo(typing.NamedTuple):
    name: str
    chain_id: Optional[int] = None


class LedgerClient(ABC):
    """
    Submits transactions on behalf of a single deployer account.

    `deploy` and `call` raise `SubmissionError` on failure; when the adapter
    can guarantee nothing was broadcast it sets `submitted=False`.
    """

    @abstractmethod
    def deploy(self, contract_type: str, args: List[Any]) -> Deployment:
        raise NotImplementedError

    @abstractmethod
    def call(self, address: str, contract_type: str, method: str, args: List[Any]) -> Receipt:
        raise NotImplementedError

    @abstractmethod
    def current_account(self) -> str:
        raise NotImplementedError

    @abstractmethod
    def network_info(self) -> NetworkInfo:
        raise NotImplementedError

    @abstractmethod
    def block_number(self) -> int:
        raise NotImplementedError

    def balance(self) -> Optional[int]:
        """Deployer balance in wei, if the backend can tell."""
        return None

    def confirm_deploy(self, component: str, contract_type: str, args: List[Any]) -> None:
        """
        Called once before a deployment is submitted, outside the step timeout.
        Interactive clients raise `DeploymentCancelled` when the operator declines.
        """

    def confirm_call(
        self, component: str, address: str, contract_type: str, method: str, args: List[Any]
    ) -> None:
        """As `confirm_deploy`, for a wiring call made on behalf of `component`."""


class VerifierClient(ABC):
    """Submits deployed source code to a block explorer."""

    @abstractmethod
    def submit(self, address: str, constructor_args: List[Any]) -> None:
        """Returns on success; raises `VerificationError` (or any error) on failure."""
        raise NotImplementedError
