import threading
import typing
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Callable, Dict, Optional

from market_deployment.context import DeployedComponent, ResolutionContext, WiringRecord
from market_deployment.errors import (
    DependencyUnresolvedError,
    DeploymentCancelled,
    DeploymentFailedError,
    StepTimeoutError,
    SubmissionError,
    WiringFailedError,
    _RunAborted,
)
from market_deployment.ledger import LedgerClient, NetworkInfo
from market_deployment.manifest import COMPLETE, PARTIAL, RunRecord
from market_deployment.plan import ComponentSpec, DeploymentPlan


class DeploymentEvent(typing.NamedTuple):
    kind: str
    component: str
    detail: Dict[str, Any]


# event kinds
STEP_STARTED = "step_started"
STEP_SKIPPED = "step_skipped"
ATTEMPT_FAILED = "attempt_failed"
COMPONENT_DEPLOYED = "component_deployed"
HOOK_STARTED = "hook_started"
HOOK_SKIPPED = "hook_skipped"
HOOK_COMPLETED = "hook_completed"

Listener = Callable[[DeploymentEvent], None]


class Executor:
    """
    Deploys the components of a plan, one at a time, in dependency order.

    Every ledger submission is made from the calling thread's sequence of
    steps, so the deployer's nonce is only ever used by one step at a time.
    Nothing is rolled back: an aborted run raises an error carrying the
    partial RunRecord of what did succeed.
    """

    def __init__(
        self,
        max_attempts: int = 1,
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
        listener: Optional[Listener] = None,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.timeout = timeout
        self.cancel_event = cancel_event or threading.Event()
        self.listener = listener

    def _emit(self, kind: str, component: str, **detail) -> None:
        if self.listener is not None:
            self.listener(DeploymentEvent(kind=kind, component=component, detail=detail))

    def _check_cancelled(self, component: str) -> None:
        if self.cancel_event.is_set():
            raise DeploymentCancelled(component=component, cause=None)

    def _with_timeout(self, operation: str, fn: Callable[[], Any]) -> Any:
        if self.timeout is None:
            return fn()
        # the submitted transaction is not cancelled on timeout
        pool = ThreadPoolExecutor(max_workers=1)
        future = pool.submit(fn)
        try:
            return future.result(timeout=self.timeout)
        except FutureTimeoutError:
            raise StepTimeoutError(operation, self.timeout)
        finally:
            pool.shutdown(wait=False)

    def _submit(self, component: str, operation: str, fn: Callable[[], Any], attempts: int) -> Any:
        """Retries only failures reported as never broadcast."""
        for attempt in range(1, attempts + 1):
            try:
                return self._with_timeout(operation, fn)
            except SubmissionError as e:
                self._emit(
                    ATTEMPT_FAILED, component, operation=operation, attempt=attempt, error=str(e)
                )
                if e.submitted or attempt == attempts:
                    raise

    def _deploy(self, spec: ComponentSpec, ledger: LedgerClient, context: ResolutionContext):
        self._check_cancelled(spec.name)
        args = spec.args_builder(context)
        self._emit(STEP_STARTED, spec.name, contract_type=spec.contract_type, args=args)
        ledger.confirm_deploy(spec.name, spec.contract_type, args)
        try:
            deployment = self._submit(
                spec.name,
                f"deploy {spec.name}",
                lambda: ledger.deploy(spec.contract_type, args),
                attempts=self.max_attempts,
            )
        except SubmissionError as e:
            raise DeploymentFailedError(component=spec.name, cause=e)

        deployed = DeployedComponent(
            name=spec.name,
            contract_type=spec.contract_type,
            address=deployment.address,
            block_number=deployment.block_number,
            constructor_args=args,
            tx_hash=deployment.tx_hash,
        )
        context.record(deployed)
        self._emit(COMPONENT_DEPLOYED, spec.name, address=deployment.address)

    def _wire(
        self,
        spec: ComponentSpec,
        plan: DeploymentPlan,
        ledger: LedgerClient,
        context: ResolutionContext,
    ):
        for hook in spec.post_deploy_hooks:
            if context.is_wired(spec.name, hook.label):
                self._emit(HOOK_SKIPPED, spec.name, hook=hook.label)
                continue

            self._check_cancelled(spec.name)
            args = hook.args_builder(context)
            target_address = context.address_of(hook.target)
            target_type = plan[hook.target].contract_type if hook.target in plan else hook.target
            self._emit(HOOK_STARTED, spec.name, hook=hook.label, address=target_address, args=args)
            ledger.confirm_call(spec.name, target_address, target_type, hook.method, args)

            # state-mutating calls are only retried when declared idempotent
            attempts = self.max_attempts if hook.idempotent else 1
            try:
                receipt = self._submit(
                    spec.name,
                    hook.label,
                    lambda: ledger.call(target_address, target_type, hook.method, args),
                    attempts=attempts,
                )
            except SubmissionError as e:
                raise WiringFailedError(component=spec.name, hook=hook.label, cause=e)

            context.record_wiring(
                WiringRecord(component=spec.name, label=hook.label, tx_hash=receipt.tx_hash)
            )
            self._emit(HOOK_COMPLETED, spec.name, hook=hook.label, tx_hash=receipt.tx_hash)

    def _record(
        self,
        context: ResolutionContext,
        network: NetworkInfo,
        ledger: LedgerClient,
        status: str,
        failure: Optional[str] = None,
    ) -> RunRecord:
        try:
            block_number = ledger.block_number()
        except SubmissionError:
            block_number = None
        return RunRecord.from_context(
            context,
            network=network.name,
            chain_id=network.chain_id,
            block_number=block_number,
            status=status,
            failure=failure,
        )

    def execute(
        self,
        plan: DeploymentPlan,
        ledger: LedgerClient,
        context: Optional[ResolutionContext] = None,
    ) -> RunRecord:
        """
        Runs every step of the plan not already present in `context`.

        Passing a context seeded from a previous record resumes that run:
        recorded components are trusted as-is and not checked on-chain.
        """
        network = ledger.network_info()
        if context is None:
            context = ResolutionContext()
        if context.deployer is None:
            context.deployer = ledger.current_account()
        for name, address in plan.external.items():
            context.external.setdefault(name, address)

        current = None
        try:
            for spec in plan.deployment_order():
                current = spec.name
                if spec.name in context:
                    self._emit(STEP_SKIPPED, spec.name, address=context.address_of(spec.name))
                else:
                    self._deploy(spec, ledger, context)
                self._wire(spec, plan, ledger, context)
        except (_RunAborted, DependencyUnresolvedError) as e:
            if e.component is None:
                e.component = current
            e.record = self._record(context, network, ledger, PARTIAL, failure=str(e))
            raise

        return self._record(context, network, ledger, COMPLETE)
