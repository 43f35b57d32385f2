"""Tests for workboard.workflow.fsm module."""

import logging

import pytest

from workboard.lib.config import config_from_dict
from workboard.workflow.fsm import (
    InvalidTransition,
    StatusMachine,
    build_transitions,
    graph_states,
)


@pytest.fixture
def config():
    return config_from_dict({})


class TestBuildTransitions:
    """Tests for turning the configured graph into machine definitions."""

    def test_one_trigger_per_edge(self):
        transitions = build_transitions({"todo": ("doing", "backlog"), "doing": ("done",)})
        assert transitions == [
            {"trigger": "move_to_doing", "source": "todo", "dest": "doing"},
            {"trigger": "move_to_backlog", "source": "todo", "dest": "backlog"},
            {"trigger": "move_to_done", "source": "doing", "dest": "done"},
        ]

    def test_states_include_targets_and_extras(self):
        states = graph_states({"todo": ("doing",)}, extra=("released",))
        assert states == ["todo", "doing", "released"]


class TestStatusMachine:
    """Tests for StatusMachine."""

    def test_initial_state(self, config):
        assert StatusMachine(config, "todo").state == "todo"

    def test_allowed_move(self, config):
        machine = StatusMachine(config, "todo", item_id="001")
        assert machine.can_move("doing")
        machine.move("doing")
        assert machine.state == "doing"

    def test_disallowed_move(self, config):
        machine = StatusMachine(config, "backlog", item_id="001")
        assert not machine.can_move("done")
        with pytest.raises(InvalidTransition) as exc_info:
            machine.move("done")
        assert exc_info.value.from_status == "backlog"
        assert exc_info.value.to_status == "done"
        assert "001" in str(exc_info.value)
        assert machine.state == "backlog"

    def test_staying_put_is_allowed(self, config):
        machine = StatusMachine(config, "review")
        assert machine.can_move("review")
        machine.move("review")
        assert machine.state == "review"

    def test_no_implicit_transitions(self, config):
        machine = StatusMachine(config, "archived")
        assert machine.available() == ["backlog"]
        assert not hasattr(machine, "to_done")

    def test_status_without_outgoing_edges(self, config):
        machine = StatusMachine(config, "released")
        assert machine.available() == []
        assert not machine.can_move("todo")

    def test_unknown_initial_status(self, config):
        with pytest.raises(InvalidTransition):
            StatusMachine(config, "someday")

    def test_custom_graph(self):
        config = config_from_dict({"status_transitions": {"todo": ["done"]}})
        machine = StatusMachine(config, "todo")
        assert machine.can_move("done")
        assert not machine.can_move("doing")

    def test_logs_transition(self, config, caplog):
        caplog.set_level(logging.DEBUG, logger="workboard.workflow.fsm")
        StatusMachine(config, "todo", item_id="042").move("doing")
        assert "[FSM] 042: todo -> doing (move_to_doing)" in caplog.text
