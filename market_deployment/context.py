import typing
from collections import OrderedDict
from typing import Any, Dict, Iterator, List, Optional

from market_deployment.errors import ContextError, DependencyUnresolvedError


class DeployedComponent(typing.NamedTuple):
    """A component whose deployment step completed."""

    name: str
    contract_type: str
    address: str
    block_number: int
    constructor_args: List[Any]
    tx_hash: Optional[str] = None


class WiringRecord(typing.NamedTuple):
    """A post-deployment wiring call that completed."""

    component: str
    label: str
    tx_hash: Optional[str] = None


class ResolutionContext:
    """
    Addresses of the components resolved so far in a run.

    Entries are only ever appended: a component is present
    if and only if its deployment step completed successfully.
    Identifiers supplied from configuration live in `external`
    and never count as deployed.
    """

    def __init__(
        self,
        deployer: Optional[str] = None,
        external: Optional[Dict[str, str]] = None,
    ):
        self.deployer = deployer
        self.external = dict(external or {})
        self._components: "OrderedDict[str, DeployedComponent]" = OrderedDict()
        self._wiring: List[WiringRecord] = list()

    @classmethod
    def from_record(cls, record, deployer: Optional[str] = None) -> "ResolutionContext":
        """Seeds a context from a previously persisted run (resume mode)."""
        context = cls(deployer=deployer or record.deployer, external=record.external)
        for component in record.components.values():
            context.record(component)
        for wiring in record.wiring:
            context.record_wiring(wiring)
        return context

    def __contains__(self, name: str) -> bool:
        return name in self._components

    def __len__(self) -> int:
        return len(self._components)

    def __iter__(self) -> Iterator[str]:
        return iter(self._components)

    def get(self, name: str) -> Optional[DeployedComponent]:
        return self._components.get(name)

    def record(self, component: DeployedComponent) -> None:
        if component.name in self._components:
            raise ContextError(f"{component.name} is already recorded at "
                               f"{self._components[component.name].address}")
        self._components[component.name] = component

    def record_wiring(self, wiring: WiringRecord) -> None:
        if self.is_wired(wiring.component, wiring.label):
            raise ContextError(f"Wiring '{wiring.label}' of {wiring.component} is already recorded")
        self._wiring.append(wiring)

    def is_wired(self, component: str, label: str) -> bool:
        return any(w.component == component and w.label == label for w in self._wiring)

    def is_resolvable(self, name: str) -> bool:
        return name in self._components or name in self.external

    def address_of(self, name: str) -> str:
        """Resolves the address of a deployed or externally supplied component."""
        if name in self._components:
            return self._components[name].address
        if name in self.external:
            return self.external[name]
        raise DependencyUnresolvedError(name)

    def snapshot(self) -> "OrderedDict[str, DeployedComponent]":
        return OrderedDict(self._components)

    @property
    def wiring(self) -> List[WiringRecord]:
        return list(self._wiring)
