import typing
from collections import OrderedDict
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from market_deployment.constants import (
    FANTASY_TOKEN,
    GOVERNANCE_TOKEN,
    GOVERNOR,
    MARKET_FACTORY,
    ORACLE_ROLE,
    PREDICTION_MARKET,
    SPORTS_ORACLE,
    TIMELOCK,
)
from market_deployment.context import ResolutionContext
from market_deployment.errors import ConfigurationError, UnknownDependencyError
from market_deployment.params import Parameters, VariableContext

ArgsBuilder = Callable[[ResolutionContext], List[Any]]


class WiringCall(typing.NamedTuple):
    """A state-mutating call made once its owning component is deployed."""

    target: str
    method: str
    args_builder: ArgsBuilder
    idempotent: bool = False

    @property
    def label(self) -> str:
        return f"{self.target}.{self.method}"

    @property
    def dependencies(self) -> FrozenSet[str]:
        return frozenset([self.target]) | getattr(self.args_builder, "dependencies", frozenset())


class ComponentSpec(typing.NamedTuple):
    name: str
    contract_type: str
    dependencies: FrozenSet[str]
    args_builder: ArgsBuilder
    post_deploy_hooks: Tuple[WiringCall, ...] = ()


def _no_args(context: ResolutionContext) -> List[Any]:
    return []


def component(
    name: str,
    contract_type: Optional[str] = None,
    params: Sequence[Any] = (),
    hooks: Iterable[Tuple[str, str, Sequence[Any]]] = (),
    depends_on: Iterable[str] = (),
    constants: Optional[Dict[str, Any]] = None,
    idempotent_hooks: Iterable[str] = (),
) -> ComponentSpec:
    """
    Declares a component from raw parameter values (see `Parameters`).

    Dependencies are the explicit `depends_on` names plus every component
    referenced by the constructor parameters. Hooks are (target, method, params)
    triples; their references must resolve by the time the component is deployed,
    which the plan checks.
    """
    variable_context = VariableContext(component_name=name, constants=constants or dict())
    args_builder = Parameters(params, variable_context) if params else _no_args
    idempotent_hooks = set(idempotent_hooks)

    wiring_calls = list()
    for target, method, hook_params in hooks:
        hook_args = Parameters(hook_params, variable_context)
        label = f"{target}.{method}"
        wiring_calls.append(
            WiringCall(
                target=target,
                method=method,
                args_builder=hook_args,
                idempotent=label in idempotent_hooks,
            )
        )

    dependencies = frozenset(depends_on) | getattr(args_builder, "dependencies", frozenset())
    return ComponentSpec(
        name=name,
        contract_type=contract_type or name,
        dependencies=dependencies,
        args_builder=args_builder,
        post_deploy_hooks=tuple(wiring_calls),
    )


def _topological_order(components: "OrderedDict[str, ComponentSpec]") -> List[ComponentSpec]:
    """
    Kahn's algorithm; among the components whose dependencies are satisfied,
    the earliest declared is always taken first.
    """
    remaining = OrderedDict(
        (name, set(spec.dependencies) & set(components)) for name, spec in components.items()
    )
    ordered = list()
    while remaining:
        ready = next((name for name, deps in remaining.items() if not deps), None)
        if ready is None:
            raise ConfigurationError(
                f"Dependency cycle detected between: {_describe_cycle(remaining)}"
            )
        ordered.append(components[ready])
        del remaining[ready]
        for deps in remaining.values():
            deps.discard(ready)
    return ordered


def _describe_cycle(remaining: Dict[str, set]) -> str:
    start = next(iter(remaining))
    path, seen = [start], {start}
    current = start
    while True:
        current = sorted(remaining[current])[0]
        if current in seen:
            cycle = path[path.index(current):] + [current]
            return " -> ".join(cycle)
        path.append(current)
        seen.add(current)


class DeploymentPlan:
    """An ordered, validated set of components to deploy."""

    def __init__(
        self, components: Sequence[ComponentSpec], external: Optional[Dict[str, str]] = None
    ):
        # components supplied by address rather than deployed
        self.external = dict(external or {})
        self.components = OrderedDict()
        for spec in components:
            if spec.name in self.components:
                raise ConfigurationError(f"Duplicate component name '{spec.name}'")
            if spec.name in self.external:
                raise ConfigurationError(f"'{spec.name}' is both deployed and external")
            self.components[spec.name] = spec

        self._validate_references()
        self._order = _topological_order(self.components)
        self._validate_hooks()

    def _known(self, name: str) -> bool:
        return name in self.components or name in self.external

    def _validate_references(self) -> None:
        for spec in self.components.values():
            for dependency in sorted(spec.dependencies):
                if not self._known(dependency):
                    raise UnknownDependencyError(spec.name, dependency)
            for hook in spec.post_deploy_hooks:
                for dependency in sorted(hook.dependencies):
                    if not self._known(dependency):
                        raise UnknownDependencyError(spec.name, dependency)

    def _validate_hooks(self) -> None:
        """Hooks may only reference components deployed no later than their owner."""
        deployed = set(self.external)
        for spec in self._order:
            deployed.add(spec.name)
            for hook in spec.post_deploy_hooks:
                pending = hook.dependencies - deployed
                if pending:
                    raise ConfigurationError(
                        f"Hook '{hook.label}' of {spec.name} references {sorted(pending)} "
                        f"which are deployed after {spec.name}"
                    )

    def deployment_order(self) -> List[ComponentSpec]:
        return list(self._order)

    def __iter__(self):
        return iter(self._order)

    def __len__(self) -> int:
        return len(self.components)

    def __contains__(self, name: str) -> bool:
        return name in self.components

    def __getitem__(self, name: str) -> ComponentSpec:
        return self.components[name]


def plan_constants(config) -> Dict[str, Any]:
    """Constants available to `$CONSTANT` parameters of the default plan."""
    return {
        "PLATFORM_FEE": config.platform_fee_basis_points,
        "MIN_BET_AMOUNT": config.min_bet_amount,
        "MAX_BET_AMOUNT": config.max_bet_amount,
        "MIN_DELAY": config.min_delay_seconds,
        "TOKEN_NAME": config.token_name,
        "TOKEN_SYMBOL": config.token_symbol,
        "INITIAL_SUPPLY": config.initial_supply,
        "REWARD_AMOUNT": config.reward_amount,
    }


def build_plan(config) -> DeploymentPlan:
    """The fantasy sports prediction market system, in declaration order."""
    constants = plan_constants(config)
    external = dict()
    components = list()

    if config.oracle_address_override:
        external[SPORTS_ORACLE] = config.oracle_address_override
    else:
        components.append(
            component(
                SPORTS_ORACLE,
                hooks=[(SPORTS_ORACLE, "grantRole", [f"$role:{ORACLE_ROLE}", "$deployer"])],
                idempotent_hooks=[f"{SPORTS_ORACLE}.grantRole"],
            )
        )

    components.extend(
        [
            component(
                FANTASY_TOKEN,
                params=["$TOKEN_NAME", "$TOKEN_SYMBOL", "$INITIAL_SUPPLY"],
                constants=constants,
            ),
            component(
                MARKET_FACTORY,
                contract_type="FantasyMarketFactory",
                params=[f"${SPORTS_ORACLE}", "$PLATFORM_FEE"],
                constants=constants,
            ),
            component(
                PREDICTION_MARKET,
                params=[
                    f"${SPORTS_ORACLE}",
                    f"${MARKET_FACTORY}",
                    f"${FANTASY_TOKEN}",
                    "$MIN_BET_AMOUNT",
                    "$MAX_BET_AMOUNT",
                    "$PLATFORM_FEE",
                ],
                hooks=[
                    (PREDICTION_MARKET, "setMarketFactory", [f"${MARKET_FACTORY}"]),
                    (MARKET_FACTORY, "setMainContract", [f"${PREDICTION_MARKET}"]),
                    (FANTASY_TOKEN, "transfer", [f"${PREDICTION_MARKET}", "$REWARD_AMOUNT"]),
                ],
                idempotent_hooks=[
                    f"{PREDICTION_MARKET}.setMarketFactory",
                    f"{MARKET_FACTORY}.setMainContract",
                ],
                constants=constants,
            ),
            component(
                TIMELOCK,
                params=["$MIN_DELAY", ["$deployer"], ["$deployer"], "$deployer"],
                constants=constants,
            ),
            component(GOVERNANCE_TOKEN),
            component(
                GOVERNOR,
                contract_type="FantasyGovernor",
                params=[f"${GOVERNANCE_TOKEN}", f"${TIMELOCK}"],
            ),
        ]
    )

    return DeploymentPlan(components, external=external)
