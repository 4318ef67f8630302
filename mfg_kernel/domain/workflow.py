"""
Workflow primitives: guarded state machines as frozen data.

Each document module declares its lifecycle as a ``Workflow`` of
``Transition`` rows.  Services never mutate a status field directly; they ask
the workflow for the transition matching (current state, action) and apply
its ``to_state``.  Guards are named conditions the calling service checks.
"""

from dataclasses import dataclass

from mfg_kernel.exceptions import InvalidTransitionError


@dataclass(frozen=True)
class Guard:
    """A condition for a transition."""
    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    """A valid state transition."""
    from_state: str
    to_state: str
    action: str
    guard: Guard | None = None


@dataclass(frozen=True)
class Workflow:
    """A state machine definition."""
    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]

    def transition_for(self, current_state: str, action: str) -> Transition:
        """
        Return the transition for ``action`` out of ``current_state``.

        Raises:
            InvalidTransitionError: No such transition exists.
        """
        for transition in self.transitions:
            if transition.from_state == current_state and transition.action == action:
                return transition
        raise InvalidTransitionError(self.name, current_state, action)

    def can(self, current_state: str, action: str) -> bool:
        return any(
            t.from_state == current_state and t.action == action
            for t in self.transitions
        )

    def allowed_actions(self, current_state: str) -> tuple[str, ...]:
        return tuple(
            t.action for t in self.transitions if t.from_state == current_state
        )

    @property
    def terminal_states(self) -> frozenset[str]:
        sources = {t.from_state for t in self.transitions}
        return frozenset(s for s in self.states if s not in sources)
