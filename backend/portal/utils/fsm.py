from __future__ import annotations
"""Simple finite state machine utility for enforcing allowed status transitions.

Usage:
    from portal.utils.fsm import TransitionValidator
    REQUEST_FSM = TransitionValidator({
        'pending': {'accepted', 'rejected'},
        'accepted': {'scheduled', 'rejected'},
        'scheduled': {'completed'},
        'completed': set(),
        'rejected': set(),
    })
    REQUEST_FSM.assert_can_transition(current_status, target_status)

Raises 400 abort if invalid. Re-applying the current status is always allowed.
"""
from typing import Dict, List, Set
from flask import abort


class TransitionValidator:
    def __init__(self, graph: Dict[str, Set[str]], field_name: str = 'status'):
        self.graph = graph
        self.field_name = field_name

    def can_transition(self, current: str, target: str) -> bool:
        if current == target:
            return True
        return target in self.graph.get(current, set())

    def assert_can_transition(self, current: str, target: str):
        if not self.can_transition(current, target):
            abort(400, description=f"Invalid {self.field_name} transition {current} -> {target}")
        return True

    def allowed_targets(self, current: str) -> List[str]:
        return sorted(self.graph.get(current, set()))

    def is_terminal(self, status: str) -> bool:
        return not self.graph.get(status)


__all__ = ['TransitionValidator']
