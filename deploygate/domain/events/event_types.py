"""Gate lifecycle event types, shared by observers and notice callbacks."""

from enum import Enum


class GateEventType(str, Enum):
    """Lifecycle events of a deploy gate.

    The values double as the "type" field of notice callback bodies.
    """

    READY = "ready"            # Gate opened, run paused
    SUBMITTED = "submitted"    # Deploy request being handed to the deployment system
    SUCCESS = "success"        # Deployment confirmed, run resumed
    ABORT = "abort"            # Gate aborted for any reason, run resumed with failure
