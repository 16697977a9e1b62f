"""
Exceptions raised by the convergence engine.
"""
from typing import Optional


class ConvergenceError(Exception):
    """Base class for all dconverge errors."""


class InvalidDependencyGraphError(ConvergenceError):
    """The depends_on edges of a project form a cycle."""

    def __init__(self, service: str):
        super().__init__(f"invalid dependency graph: circular dependency involving {service!r}")
        self.service = service


class InvalidScaleError(ConvergenceError):
    """The desired replica count of a service cannot be honoured."""

    def __init__(self, service: str, message: str):
        super().__init__(message)
        self.service = service


class InvalidLabelError(ConvergenceError):
    """A container carries a label the engine cannot interpret."""

    def __init__(self, container_id: str, label: str, value: Optional[str]):
        super().__init__(f"container {container_id[:12]} has invalid label {label}={value!r}")
        self.container_id = container_id
        self.label = label
        self.value = value


class DependencyConditionError(ConvergenceError):
    """A dependency can never satisfy the condition a dependent waits for."""

    def __init__(self, service: str, message: str):
        super().__init__(message)
        self.service = service


class MissingHealthcheckError(DependencyConditionError):
    def __init__(self, service: str):
        super().__init__(service, f"container for service {service!r} has no healthcheck configured")


class DependencyFailedError(DependencyConditionError):
    def __init__(self, service: str, exit_code: int):
        super().__init__(service, f"service {service!r} didn't complete successfully: exit {exit_code}")
        self.exit_code = exit_code


class OperationCancelledError(ConvergenceError):
    """Raised by work that observed a cancelled token before completing."""

    def __init__(self, message: str = "operation cancelled"):
        super().__init__(message)


class ComposeFileError(ConvergenceError):
    """The desired-state file could not be turned into a project."""


class InterpolationError(ComposeFileError):
    def __init__(self, variable: str, message: str):
        super().__init__(f"required variable {variable} is missing a value: {message}")
        self.variable = variable


class NoSuchServiceError(ConvergenceError):
    def __init__(self, service: str):
        super().__init__(f"no such service: {service}")
        self.service = service
