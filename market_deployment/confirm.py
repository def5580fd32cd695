from typing import Any, List

from market_deployment.constants import NULL_ADDRESS
from market_deployment.errors import DeploymentCancelled


def _declined(answer: str) -> bool:
    return answer.lower().strip() == "n"


def _confirm_deployment(component: str) -> None:
    """Asks the operator to confirm the deployment of a single contract."""
    answer = input(f"Deploy {component} Y/N? ")
    if _declined(answer):
        print("Aborting deployment!")
        raise DeploymentCancelled(component=component, cause=None)


def _continue(component: str) -> None:
    """Asks the operator to continue."""
    answer = input("Continue Y/N? ")
    if _declined(answer):
        print("Aborting deployment!")
        raise DeploymentCancelled(component=component, cause=None)


def _confirm_null_address(component: str) -> None:
    answer = input("Zero Address detected for deployment parameter; Continue? Y/N? ")
    if _declined(answer):
        print("Aborting deployment!")
        raise DeploymentCancelled(component=component, cause=None)


def _contains_null_address(value: Any) -> bool:
    if isinstance(value, (list, tuple)):
        return any(_contains_null_address(v) for v in value)
    return isinstance(value, str) and value.lower() == NULL_ADDRESS


def _confirm_resolution(resolved_args: List[Any], component: str) -> None:
    """Asks the operator to confirm the resolved constructor arguments for a single contract."""
    if len(resolved_args) == 0:
        print(f"\n(i) No constructor parameters for {component}")
        _confirm_deployment(component)
        return

    print(f"\nConstructor parameters for {component}")
    for position, resolved_value in enumerate(resolved_args):
        print(f"\t[{position}]={resolved_value}")
    _confirm_deployment(component)
    if _contains_null_address(resolved_args):
        _confirm_null_address(component)
