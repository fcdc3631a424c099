"""Domain-level exceptions for the deploy gate.

Every error a caller can provoke derives from GateError so the REST and CLI
layers can map the whole family in one place.
"""


class GateError(Exception):
    """Raised when a gate operation is rejected."""

    pass


class GatePermissionError(GateError):
    """Raised when the acting principal may not submit or cancel the gate."""

    pass


class GateAlreadySettledError(GateError):
    """Raised when a gate has already been decided (or a submission is in progress)."""

    pass


class GateInFlightError(GateError):
    """Raised when an interactive cancel arrives after the deploy request was sent."""

    pass


class GateNotSubmittedError(GateError):
    """Raised when completion is reported for a gate that was never accepted."""

    pass


class GateStateUnavailableError(GateError):
    """Raised when the run's pending gates cannot be restored ("cannot load state")."""

    pass


class GateNotFoundError(GateError):
    """Raised when no pending gate matches the requested id."""

    def __init__(self, gate_id: str, run_id: str):
        self.gate_id = gate_id
        self.run_id = run_id
        super().__init__(f"No pending deploy gate '{gate_id}' in run '{run_id}'")


class UnknownParameterError(GateError):
    """Raised when submitted form data names an undeclared parameter."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"No such parameter definition: {name}")


class InvalidParameterValueError(GateError):
    """Raised when a submitted value does not fit its parameter definition."""

    pass
