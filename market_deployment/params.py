import typing
from abc import ABC, abstractmethod
from typing import Any, Dict, FrozenSet, List, Sequence

from eth_utils import keccak

from market_deployment.context import ResolutionContext
from market_deployment.errors import ConfigurationError


class VariableContext(typing.NamedTuple):
    component_name: str
    constants: Dict[str, Any]


# Variables


class Variable(ABC):
    VARIABLE_PREFIX = "$"

    @abstractmethod
    def resolve(self, context: ResolutionContext) -> Any:
        raise NotImplementedError

    @classmethod
    def is_variable(cls, param: Any) -> bool:
        """Returns True if the param is a variable."""
        result = isinstance(param, str) and param.startswith(cls.VARIABLE_PREFIX)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self})"


class DeployerAccount(Variable):
    DEPLOYER_INDICATOR = "deployer"

    @classmethod
    def is_deployer(cls, value: str) -> bool:
        """Returns True if the variable is the special deployer variable."""
        return value == cls.DEPLOYER_INDICATOR

    def resolve(self, context: ResolutionContext) -> Any:
        if context.deployer is None:
            raise ConfigurationError("Deployer account is not set")
        return context.deployer

    def __str__(self) -> str:
        return f"{self.VARIABLE_PREFIX}{self.DEPLOYER_INDICATOR}"


class Constant(Variable):
    def __init__(self, constant_name: str, variable_context: VariableContext):
        self.constant_name = constant_name
        self.constant_value = variable_context.constants[constant_name]

    @classmethod
    def is_constant(cls, value: str, variable_context: VariableContext) -> bool:
        """Returns True if the variable names a deployment constant."""
        return value in variable_context.constants

    def resolve(self, context: ResolutionContext) -> Any:
        return self.constant_value

    def __str__(self) -> str:
        return f"{self.VARIABLE_PREFIX}{self.constant_name}"


class Role(Variable):
    """An AccessControl role identifier, i.e. keccak256 of the role name."""

    ROLE_PREFIX = "role:"

    def __init__(self, variable: str):
        self.role_name = variable[len(self.ROLE_PREFIX) :]
        if not self.role_name:
            raise ConfigurationError("Role variable without a role name")

    @classmethod
    def is_role(cls, value: str) -> bool:
        return value.startswith(cls.ROLE_PREFIX)

    def resolve(self, context: ResolutionContext) -> Any:
        return keccak(text=self.role_name)

    def __str__(self) -> str:
        return f"{self.VARIABLE_PREFIX}{self.ROLE_PREFIX}{self.role_name}"


class ComponentAddress(Variable):
    def __init__(self, component_name: str):
        self.component_name = component_name

    def resolve(self, context: ResolutionContext) -> Any:
        """Resolves a component address; raises if it is not resolved yet."""
        return context.address_of(self.component_name)

    def __str__(self) -> str:
        return f"{self.VARIABLE_PREFIX}{self.component_name}"


def _variable_from_value(variable: str, variable_context: VariableContext) -> Variable:
    variable = variable[len(Variable.VARIABLE_PREFIX) :]
    if DeployerAccount.is_deployer(variable):
        return DeployerAccount()
    elif Role.is_role(variable):
        return Role(variable)
    elif Constant.is_constant(variable, variable_context):
        return Constant(variable, variable_context)
    else:
        return ComponentAddress(variable)


def _process_raw_value(value: Any, variable_context: VariableContext) -> Any:
    if isinstance(value, (list, tuple)):
        return [_process_raw_value(v, variable_context) for v in value]

    if Variable.is_variable(value):
        value = _variable_from_value(value, variable_context)

    return value


def _resolve_param(value: Any, context: ResolutionContext) -> Any:
    """Resolves a single parameter value or a list of parameter values."""
    if isinstance(value, list):
        return [_resolve_param(v, context) for v in value]

    if isinstance(value, Variable):
        return value.resolve(context)

    return value  # literally a value


def _referenced_components(value: Any) -> FrozenSet[str]:
    if isinstance(value, list):
        names = set()
        for v in value:
            names.update(_referenced_components(v))
        return frozenset(names)
    if isinstance(value, ComponentAddress):
        return frozenset([value.component_name])
    return frozenset()


class Parameters:
    """
    An ordered list of raw parameter values, where strings prefixed with `$` are
    variables resolved at deployment time:

        $deployer            the deployer account
        $SOME_CONSTANT       a constant of the component declaration
        $role:ROLE_NAME      keccak256 of the role name
        $ComponentName       address of a component of the plan

    Instances are pure argument builders: calling one with a resolution
    context returns the resolved argument list.
    """

    def __init__(self, values: Sequence[Any], variable_context: VariableContext):
        self.component_name = variable_context.component_name
        self.values = [_process_raw_value(v, variable_context) for v in values]

    @property
    def dependencies(self) -> FrozenSet[str]:
        """Names of the components these parameters refer to."""
        return _referenced_components(self.values)

    def __call__(self, context: ResolutionContext) -> List[Any]:
        return [_resolve_param(value, context) for value in self.values]

    def __repr__(self) -> str:
        return f"Parameters({self.component_name}: {self.values})"
