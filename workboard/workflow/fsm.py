"""Work item status machine using the transitions library.

The allowed-status-transition graph comes from configuration
(`status_transitions`), so the machine is built per config rather than
from a fixed table. Each edge becomes a `move_to_<status>` trigger.

Usage:
    from workboard.workflow.fsm import StatusMachine

    machine = StatusMachine(config, "todo", item_id="007")
    machine.can_move("doing")   # True
    machine.move("doing")       # state is now "doing"
"""

import logging
from typing import Mapping

from transitions import Machine

from workboard.lib.config import WorkboardConfig

logger = logging.getLogger(__name__)


class InvalidTransition(Exception):
    """Raised when a status change is not in the transition graph."""

    def __init__(self, from_status: str, to_status: str, item_id: str = ""):
        self.from_status = from_status
        self.to_status = to_status
        self.item_id = item_id
        super().__init__(
            f"Invalid transition: {from_status} -> {to_status}"
            + (f" (work item: {item_id})" if item_id else "")
        )


def trigger_name(status: str) -> str:
    return f"move_to_{status}"


def build_transitions(graph: Mapping[str, tuple[str, ...]]) -> list[dict]:
    """Turn a status -> [next statuses] graph into transitions definitions."""
    transitions = []
    for source, targets in graph.items():
        for dest in targets:
            transitions.append({"trigger": trigger_name(dest), "source": source, "dest": dest})
    return transitions


def graph_states(graph: Mapping[str, tuple[str, ...]], extra: tuple[str, ...] = ()) -> list[str]:
    """All statuses mentioned by the graph, in first-seen order."""
    states: list[str] = []
    for source, targets in graph.items():
        for status in (source, *targets):
            if status not in states:
                states.append(status)
    for status in extra:
        if status not in states:
            states.append(status)
    return states


class StatusMachine:
    """Status machine for one work item.

    Statuses that appear in configuration but have no outgoing edges are
    valid states with no way out.
    """

    def __init__(self, config: WorkboardConfig, initial: str, item_id: str = ""):
        self.item_id = item_id
        self.graph = config.status_transitions
        states = graph_states(self.graph, config.validation.status_values)
        if initial not in states:
            raise InvalidTransition(initial, initial, item_id)

        self.machine = Machine(
            model=self,
            states=states,
            transitions=build_transitions(self.graph),
            initial=initial,
            auto_transitions=False,  # Only edges from the graph
            send_event=True,
            after_state_change="on_state_change",
        )

    def on_state_change(self, event) -> None:
        logger.debug(
            f"[FSM] {self.item_id or '?'}: {event.transition.source} -> "
            f"{event.transition.dest} ({event.event.name})"
        )

    def can_move(self, to_status: str) -> bool:
        """True if the current status may change to to_status. Staying put is always allowed."""
        if to_status == self.state:
            return True
        return trigger_name(to_status) in self.machine.get_triggers(self.state)

    def move(self, to_status: str) -> None:
        """Change status, raising InvalidTransition if the edge doesn't exist."""
        if to_status == self.state:
            return
        if not self.can_move(to_status):
            raise InvalidTransition(self.state, to_status, self.item_id)
        self.trigger(trigger_name(to_status))

    def available(self) -> list[str]:
        """Statuses reachable in one step from the current status."""
        prefix = trigger_name("")
        return [t[len(prefix):] for t in self.machine.get_triggers(self.state) if t.startswith(prefix)]
