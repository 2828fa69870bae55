"""Request builder lifecycle state machine."""

from enum import Enum, auto
from typing import ClassVar

import structlog


logger = structlog.get_logger()


class BuilderState(Enum):
    """Request builder lifecycle states.

    State transitions:
        UNCONFIGURED -> CONFIGURING: First configuration call
        CONFIGURING -> CONFIGURING: Further configuration calls
        UNCONFIGURED/CONFIGURING -> MATERIALIZED: Transport request built
        MATERIALIZED -> EXECUTED: Request sent on the transport
        UNCONFIGURED/CONFIGURING/MATERIALIZED -> FAILED: Deferred error recorded
    """

    UNCONFIGURED = auto()
    CONFIGURING = auto()
    MATERIALIZED = auto()
    EXECUTED = auto()
    FAILED = auto()


class BuilderStateError(Exception):
    """Raised when an invalid builder state transition is attempted."""

    def __init__(self, from_state: BuilderState, to_state: BuilderState) -> None:
        """Initialize the error.

        Args:
            from_state: The current state.
            to_state: The attempted target state.
        """
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Invalid builder state transition: {from_state.name} -> {to_state.name}"
        )


class BuilderStateMachine:
    """State machine for the request builder lifecycle.

    FAILED and EXECUTED are terminal. A FAILED builder never leaves that
    state, which is what makes deferred errors absorbing.
    """

    VALID_TRANSITIONS: ClassVar[dict[BuilderState, set[BuilderState]]] = {
        BuilderState.UNCONFIGURED: {
            BuilderState.CONFIGURING,
            BuilderState.MATERIALIZED,
            BuilderState.FAILED,
        },
        BuilderState.CONFIGURING: {
            BuilderState.CONFIGURING,
            BuilderState.MATERIALIZED,
            BuilderState.FAILED,
        },
        BuilderState.MATERIALIZED: {
            BuilderState.EXECUTED,
            BuilderState.FAILED,
        },
        BuilderState.EXECUTED: set(),  # Terminal state
        BuilderState.FAILED: set(),  # Terminal state
    }

    def __init__(self, method: str, url: str) -> None:
        """Initialize the state machine in UNCONFIGURED state.

        Args:
            method: Request method, for logging.
            url: Redacted request URL, for logging.
        """
        self._state = BuilderState.UNCONFIGURED
        self._log = logger.bind(component="requester", method=method, url=url)

    @property
    def state(self) -> BuilderState:
        """Get the current state."""
        return self._state

    def can_transition(self, to_state: BuilderState) -> bool:
        """Check if a transition to the given state is valid.

        Args:
            to_state: The target state.

        Returns:
            True if the transition is valid, False otherwise.
        """
        return to_state in self.VALID_TRANSITIONS.get(self._state, set())

    def transition(self, to_state: BuilderState) -> None:
        """Transition to a new state.

        Args:
            to_state: The target state.

        Raises:
            BuilderStateError: If the transition is invalid.
        """
        if not self.can_transition(to_state):
            raise BuilderStateError(self._state, to_state)

        old_state = self._state
        self._state = to_state
        if old_state != to_state:
            self._log.debug(
                "builder_state_transition",
                from_state=old_state.name,
                to_state=to_state.name,
            )

    def is_terminal(self) -> bool:
        """Check if the current state is terminal (no more transitions allowed)."""
        return self._state in (BuilderState.EXECUTED, BuilderState.FAILED)

    def is_failed(self) -> bool:
        """Check if a deferred error has been recorded."""
        return self._state == BuilderState.FAILED

    def is_materialized(self) -> bool:
        """Check if the transport request has been built."""
        return self._state in (BuilderState.MATERIALIZED, BuilderState.EXECUTED)
