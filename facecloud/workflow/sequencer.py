"""
Step sequencing for multi-step form wizards.

A sequencer walks an ordered list of steps. Some steps can be hidden by skip
predicates: pure functions over a snapshot of the form values plus any
context loaded asynchronously (for example the list of clinics a user can
assign staff to). Predicates are evaluated on every navigation call and
every read of the current step, never cached, because that context can
arrive after the sequencer has been built.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from ..errors import FieldError, InvalidStepError
from .rules import Rule, evaluate

logger = logging.getLogger(__name__)

Snapshot = Mapping[str, Any]
SkipPredicate = Callable[[Snapshot], bool]


@dataclass(frozen=True)
class Step:
    """One page of a wizard and the rules that gate leaving it forwards."""

    id: str
    title: str
    rules: Tuple[Rule, ...] = ()


@dataclass
class StepSequence:
    steps: Tuple[Step, ...]
    skip_predicates: Dict[str, SkipPredicate] = field(default_factory=dict)

    def __post_init__(self) -> None:
        ids = [step.id for step in self.steps]
        if not ids:
            raise ValueError("A step sequence needs at least one step")
        if len(set(ids)) != len(ids):
            raise ValueError(f"Duplicate step ids in sequence: {ids}")
        unknown = set(self.skip_predicates) - set(ids)
        if unknown:
            raise ValueError(f"Skip predicates registered for unknown steps: {sorted(unknown)}")

    def index_of(self, step_id: str) -> int:
        for index, step in enumerate(self.steps):
            if step.id == step_id:
                return index
        raise InvalidStepError(step_id)


class StepSequencer:
    """Navigates a :class:`StepSequence` against a snapshot provider."""

    def __init__(
        self,
        sequence: StepSequence,
        snapshot: Callable[[], Snapshot],
    ) -> None:
        self.sequence = sequence
        self._snapshot = snapshot
        self._index = 0
        self.errors: List[FieldError] = []
        self._index = self._resolve(0)

    # ------------------------------------------------------------------
    # Predicate evaluation
    # ------------------------------------------------------------------
    def _skipped_at(self, index: int, snapshot: Snapshot) -> bool:
        predicate = self.sequence.skip_predicates.get(self.sequence.steps[index].id)
        if predicate is None:
            return False
        return bool(predicate(snapshot))

    def is_skipped(self, step_id: str) -> bool:
        index = self.sequence.index_of(step_id)
        return self._skipped_at(index, self._snapshot())

    def _navigable_indexes(self, snapshot: Snapshot) -> List[int]:
        return [
            index
            for index in range(len(self.sequence.steps))
            if not self._skipped_at(index, snapshot)
        ]

    def _resolve(self, index: int, snapshot: Optional[Snapshot] = None) -> int:
        """Return ``index`` if navigable, else the nearest navigable step forward, then backward."""
        if snapshot is None:
            snapshot = self._snapshot()
        navigable = self._navigable_indexes(snapshot)
        if not navigable:
            # Every step hidden: stay put rather than invent a position.
            return index
        if index in navigable:
            return index
        ahead = [candidate for candidate in navigable if candidate > index]
        if ahead:
            return ahead[0]
        return navigable[-1]

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------
    @property
    def index(self) -> int:
        self._index = self._resolve(self._index)
        return self._index

    @property
    def current(self) -> Step:
        return self.sequence.steps[self.index]

    @property
    def navigable_steps(self) -> List[Step]:
        snapshot = self._snapshot()
        return [self.sequence.steps[index] for index in self._navigable_indexes(snapshot)]

    @property
    def position(self) -> int:
        """1-based number of the current step among the visible ones."""
        ids = [step.id for step in self.navigable_steps]
        current_id = self.current.id
        return ids.index(current_id) + 1 if current_id in ids else 1

    @property
    def is_first(self) -> bool:
        snapshot = self._snapshot()
        index = self._resolve(self._index, snapshot)
        return not any(candidate < index for candidate in self._navigable_indexes(snapshot))

    @property
    def is_last(self) -> bool:
        snapshot = self._snapshot()
        index = self._resolve(self._index, snapshot)
        return not any(candidate > index for candidate in self._navigable_indexes(snapshot))

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------
    def validate_current(self) -> List[FieldError]:
        snapshot = self._snapshot()
        self._index = self._resolve(self._index, snapshot)
        return evaluate(self.sequence.steps[self._index].rules, snapshot)

    def advance(self) -> bool:
        """Move to the next visible step. Returns False when blocked or already last."""
        snapshot = self._snapshot()
        self._index = self._resolve(self._index, snapshot)
        step = self.sequence.steps[self._index]

        self.errors = evaluate(step.rules, snapshot)
        if self.errors:
            logger.debug("Step %s blocked by %d validation error(s)", step.id, len(self.errors))
            return False

        ahead = [candidate for candidate in self._navigable_indexes(snapshot) if candidate > self._index]
        if not ahead:
            return False
        self._index = ahead[0]
        return True

    def retreat(self) -> bool:
        """Move to the previous visible step. Returns False at the first one."""
        snapshot = self._snapshot()
        self._index = self._resolve(self._index, snapshot)
        behind = [candidate for candidate in self._navigable_indexes(snapshot) if candidate < self._index]
        if not behind:
            return False
        self.errors = []
        self._index = behind[-1]
        return True

    def jump_to(self, step_id: str) -> Step:
        index = self.sequence.index_of(step_id)
        if self._skipped_at(index, self._snapshot()):
            raise InvalidStepError(step_id, "step is skipped")
        self.errors = []
        self._index = index
        return self.sequence.steps[index]

    def restore(self, index: int) -> None:
        """Place the sequencer at a saved index, clamped and resolved to a visible step."""
        bounded = min(max(int(index), 0), len(self.sequence.steps) - 1)
        self._index = self._resolve(bounded)


__all__ = ["Snapshot", "SkipPredicate", "Step", "StepSequence", "StepSequencer"]
