from typing import Optional


class DeploymentError(Exception):
    """Base class for all orchestration errors."""


class ConfigurationError(DeploymentError, ValueError):
    """Raised when the deployment configuration or plan is invalid."""


class UnknownDependencyError(ConfigurationError):
    """Raised when a component references a name that is not part of the plan."""

    def __init__(self, component: str, dependency: str):
        self.component = component
        self.dependency = dependency
        super().__init__(f"{component} depends on unknown component '{dependency}'")


class DependencyUnresolvedError(DeploymentError):
    """Raised when an argument refers to a component that has not been deployed yet."""

    component = None
    record = None

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"'{name}' has not been resolved")


class ContextError(DeploymentError):
    """Raised on an attempt to overwrite an entry of the resolution context."""


class ManifestError(DeploymentError):
    """Raised when a manifest cannot be read."""


class SubmissionError(DeploymentError):
    """
    Raised by a ledger adapter when a transaction fails.

    `submitted` is True when the transaction may have been broadcast;
    such a step is never retried.
    """

    def __init__(self, message: str, submitted: bool = True):
        self.submitted = submitted
        super().__init__(message)


class StepTimeoutError(SubmissionError):
    """Raised when an adapter call does not complete within the step timeout."""

    def __init__(self, operation: str, timeout: float):
        self.timeout = timeout
        super().__init__(f"{operation} did not complete within {timeout}s", submitted=True)


class _RunAborted(DeploymentError):
    """Common base for errors that stop a run and carry its partial record."""

    step = None

    def __init__(self, component: str, cause: Optional[BaseException], record=None):
        self.component = component
        self.cause = cause
        self.record = record
        super().__init__(self._message())

    def _message(self) -> str:
        return f"{self.component} failed during {self.step}: {self.cause}"


class DeploymentFailedError(_RunAborted):
    """Raised when a component could not be deployed."""

    step = "deploy"


class WiringFailedError(_RunAborted):
    """Raised when a post-deployment wiring call failed."""

    step = "wiring hook"

    def __init__(self, component: str, hook: str, cause: BaseException, record=None):
        self.hook = hook
        super().__init__(component, cause, record)

    def _message(self) -> str:
        return f"{self.component} failed during {self.step} '{self.hook}': {self.cause}"


class DeploymentCancelled(_RunAborted):
    """Raised when the operator stopped the run before the next step."""

    step = "cancellation"

    def _message(self) -> str:
        return f"Deployment cancelled before {self.component}"


class VerificationError(DeploymentError):
    """Raised by a verification collaborator when a submission is rejected."""
