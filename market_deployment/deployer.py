import signal
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Optional, Tuple

from market_deployment.config import DeploymentConfig
from market_deployment.context import ResolutionContext
from market_deployment.errors import ConfigurationError, DeploymentError
from market_deployment.executor import Executor, Listener
from market_deployment.ledger import LedgerClient, NetworkInfo, VerifierClient
from market_deployment.manifest import ManifestWriter, RunRecord
from market_deployment.plan import DeploymentPlan, build_plan
from market_deployment.verify import (
    VerificationReport,
    is_local_network,
    unavailable_report,
    verify_all,
)


@contextmanager
def cancel_on_interrupt(cancel_event: threading.Event):
    """
    The first SIGINT requests cancellation before the next step; a transaction
    already submitted is left to complete. A second SIGINT interrupts immediately.
    """

    def handler(signum, frame):
        if cancel_event.is_set():
            raise KeyboardInterrupt
        print("\nCancellation requested; stopping before the next step (Ctrl-C again to force).")
        cancel_event.set()

    previous = signal.signal(signal.SIGINT, handler)
    try:
        yield cancel_event
    finally:
        signal.signal(signal.SIGINT, previous)


class Deployer:
    """
    Runs a deployment end to end: plan, execution, manifest, verification.
    Whatever happens during execution, the manifest reflects what was deployed.
    """

    def __init__(
        self,
        config: DeploymentConfig,
        ledger: LedgerClient,
        writer: Optional[ManifestWriter] = None,
        listener: Optional[Listener] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        self.config = config
        self.ledger = ledger
        self.writer = writer or ManifestWriter(config.artifacts_dir)
        self.cancel_event = cancel_event or threading.Event()
        self.executor = Executor(
            max_attempts=config.max_attempts,
            timeout=config.step_timeout,
            cancel_event=self.cancel_event,
            listener=listener,
        )
        self.network: NetworkInfo = ledger.network_info()
        self.destination_key = self.writer.destination_key(
            self.network.name, self.network.chain_id
        )

    @property
    def manifest_filepath(self) -> Path:
        return self.writer.filepath(self.destination_key)

    def _resume_context(self, plan: DeploymentPlan, record: RunRecord) -> ResolutionContext:
        """Checks that a recorded run can be continued by this account with this plan."""
        if record.chain_id is not None and record.chain_id != self.network.chain_id:
            raise ConfigurationError(
                f"Manifest chain id {record.chain_id} does not match the connected "
                f"network ({self.network.chain_id})."
            )
        account = self.ledger.current_account()
        if record.deployer and record.deployer.lower() != account.lower():
            raise ConfigurationError(
                f"Manifest was deployed by {record.deployer}; cannot resume as {account}."
            )
        unknown = [name for name in record.components if name not in plan]
        if unknown:
            raise ConfigurationError(f"Manifest contains components not in the plan: {unknown}")
        for name, recorded in record.external.items():
            if name in plan:
                raise ConfigurationError(
                    f"{name} was recorded as external at {recorded} "
                    "but is now deployed by the plan."
                )
            configured = plan.external.get(name)
            if configured != recorded:
                raise ConfigurationError(
                    f"{name} was recorded at {recorded} but is now configured as {configured}."
                )
        return ResolutionContext.from_record(record)

    def prepare(self, resume: bool = False) -> Tuple[DeploymentPlan, ResolutionContext]:
        plan = build_plan(self.config)
        previous = self.writer.load(self.destination_key)
        if previous is None:
            return plan, ResolutionContext()
        if not resume:
            raise ConfigurationError(
                f"A deployment is already recorded for {self.network.name} at "
                f"{self.manifest_filepath} ({previous.status}); use --resume to continue it."
            )
        return plan, self._resume_context(plan, previous)

    def _partial(self, context: ResolutionContext, failure: str) -> RunRecord:
        return RunRecord.from_context(
            context,
            network=self.network.name,
            chain_id=self.network.chain_id,
            failure=failure,
        )

    def deploy(self, resume: bool = False) -> RunRecord:
        plan, context = self.prepare(resume=resume)
        try:
            record = self.executor.execute(plan, self.ledger, context)
        except DeploymentError as e:
            record = getattr(e, "record", None) or self._partial(context, failure=str(e))
            self.writer.persist(record, self.destination_key)
            raise
        except BaseException as e:
            self.writer.persist(self._partial(context, failure=repr(e)), self.destination_key)
            raise
        self.writer.persist(record, self.destination_key)
        return record

    def verify(
        self,
        record: RunRecord,
        verifier_factory: Callable[[], VerifierClient],
        on_result=None,
    ) -> VerificationReport:
        """
        The verifier is only created when verification applies to this network.
        Failing to create it fails every component; it never aborts the run.
        """
        verifier = None
        local = is_local_network(record.network, record.chain_id)
        if self.config.verification_enabled and not local:
            try:
                verifier = verifier_factory()
            except Exception as e:
                return unavailable_report(record, str(e) or e.__class__.__name__, on_result)
        return verify_all(
            record,
            verifier,
            api_key=self.config.verifier_api_key,
            max_workers=self.config.verify_workers,
            on_result=on_result,
        )
