"""
hireflow exception hierarchy.

Every error in the system inherits from HireflowError.
Each subsystem has its own error class for targeted catching.

A rule that simply does not apply to an event is NOT an error: the engine
reports it as a skipped result, never by raising.

Usage:
    try:
        await service.create(data)
    except AutomationValidationError as e:
        # e.errors lists every problem found
    except HireflowError as e:
        # Handle any hireflow error
"""


class HireflowError(Exception):
    """Base exception for all hireflow errors."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


# ━━━ Layer 0: Core Errors ━━━


class ConfigError(HireflowError):
    """Configuration is invalid, missing, or malformed."""

    pass


class RegistryError(HireflowError):
    """Executor registration conflict or lookup failure."""

    pass


class ExecutorNotFoundError(RegistryError):
    """No executor is registered for an action type."""

    pass


class StorageError(HireflowError):
    """Storage backend failure — database errors, corruption, etc."""

    pass


# ━━━ Layer 1: Definition Errors ━━━


class AutomationValidationError(HireflowError):
    """An automation definition is structurally invalid.

    Raised at create/update time, before anything is persisted.
    """

    def __init__(self, errors: list[str], details: dict | None = None):
        self.errors = list(errors)
        message = "; ".join(self.errors) or "Invalid automation"
        super().__init__(message, details)


class AutomationNotFoundError(HireflowError):
    """Requested automation does not exist in the store."""

    def __init__(self, automation_id: str, details: dict | None = None):
        self.automation_id = automation_id
        super().__init__(f"Automation not found: {automation_id}", details)


class TemplateNotFoundError(HireflowError):
    """Requested template does not exist in the catalog."""

    pass


# ━━━ Layer 2: Execution Errors ━━━


class ExecutorError(HireflowError):
    """An action executor failed (downstream/business failure)."""

    def __init__(
        self,
        message: str,
        action_type: str = "",
        details: dict | None = None,
    ):
        self.action_type = action_type
        super().__init__(message, details)


class SchedulingError(HireflowError):
    """A delayed action could not be durably persisted (infrastructure failure)."""

    def __init__(
        self,
        message: str,
        action_type: str = "",
        details: dict | None = None,
    ):
        self.action_type = action_type
        super().__init__(message, details)
