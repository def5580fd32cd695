import typing
from collections import OrderedDict
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, List, Optional

from market_deployment.constants import LOCAL_CHAIN_IDS, LOCAL_NETWORK_NAMES
from market_deployment.ledger import VerifierClient
from market_deployment.manifest import RunRecord

VERIFIED = "verified"
FAILED = "failed"
SKIPPED = "skipped"

NOT_APPLICABLE = "NotApplicable"


class VerificationTask(typing.NamedTuple):
    component_name: str
    identifier: str
    constructor_args: List[Any]


class VerificationResult(typing.NamedTuple):
    status: str
    reason: Optional[str] = None


class VerificationReport(OrderedDict):
    """Maps component name -> VerificationResult, in manifest order."""

    def _names(self, status: str) -> List[str]:
        return [name for name, result in self.items() if result.status == status]

    @property
    def verified(self) -> List[str]:
        return self._names(VERIFIED)

    @property
    def failed(self) -> List[str]:
        return self._names(FAILED)

    @property
    def skipped(self) -> List[str]:
        return self._names(SKIPPED)

    @property
    def ok(self) -> bool:
        return not self.failed


def is_local_network(network: str, chain_id: Optional[int] = None) -> bool:
    return network in LOCAL_NETWORK_NAMES or chain_id in LOCAL_CHAIN_IDS


def verification_tasks(record: RunRecord) -> List[VerificationTask]:
    """One task per deployed component; external components are never verified."""
    return [
        VerificationTask(
            component_name=name,
            identifier=component.address,
            constructor_args=list(component.constructor_args),
        )
        for name, component in record.components.items()
    ]


def _verify(verifier: VerifierClient, task: VerificationTask) -> VerificationResult:
    try:
        verifier.submit(task.identifier, task.constructor_args)
    except Exception as e:
        # isolated: one rejected submission never stops the others
        return VerificationResult(status=FAILED, reason=str(e) or e.__class__.__name__)
    return VerificationResult(status=VERIFIED)


def verify_all(
    record: RunRecord,
    verifier: VerifierClient,
    api_key: Optional[str],
    max_workers: int = 1,
    on_result: Optional[Callable[[str, VerificationResult], None]] = None,
) -> VerificationReport:
    """
    Submits every deployed component of the record for source verification.

    Submissions are independent and may run concurrently (up to `max_workers`);
    a failure is recorded in the report and never raised.
    Re-running resubmits components that were already verified.
    """
    tasks = verification_tasks(record)
    report = VerificationReport()

    skip_reason = None
    if is_local_network(record.network, record.chain_id):
        skip_reason = f"{NOT_APPLICABLE}: local network '{record.network}'"
    elif not api_key:
        skip_reason = f"{NOT_APPLICABLE}: no verifier API key configured"
    if skip_reason:
        for task in tasks:
            report[task.component_name] = VerificationResult(status=SKIPPED, reason=skip_reason)
        return report

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        futures = [(task, pool.submit(_verify, verifier, task)) for task in tasks]
        for task, future in futures:
            result = future.result()
            report[task.component_name] = result
            if on_result is not None:
                on_result(task.component_name, result)

    return report


def unavailable_report(
    record: RunRecord,
    reason: str,
    on_result: Optional[Callable[[str, VerificationResult], None]] = None,
) -> VerificationReport:
    """Reports every component as failed when no verifier could be created."""
    report = VerificationReport()
    for task in verification_tasks(record):
        result = VerificationResult(status=FAILED, reason=f"verifier unavailable: {reason}")
        report[task.component_name] = result
        if on_result is not None:
            on_result(task.component_name, result)
    return report
