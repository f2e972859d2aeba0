"""
Form wizards: a step sequencer, nested form values and a draft, bound together.

A wizard's snapshot is the form values plus a ``context`` entry holding data
loaded after construction (the clinics a user can pick from, whether an
existing record is being edited). Skip predicates and auto-assignment hooks
read only from that snapshot.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, TypeVar

from ..errors import FieldError, ValidationError
from ..workflow.drafts import DraftStore
from ..workflow.rules import evaluate
from ..workflow.sequencer import SkipPredicate, Step, StepSequence, StepSequencer

logger = logging.getLogger(__name__)

T = TypeVar("T")

Normalizer = Callable[[Dict[str, Any], Mapping[str, Any]], None]


def deep_merge(base: Dict[str, Any], incoming: Mapping[str, Any]) -> Dict[str, Any]:
    """Merge ``incoming`` into ``base`` recursively, in place."""
    for key, value in incoming.items():
        if isinstance(value, Mapping) and isinstance(base.get(key), dict):
            deep_merge(base[key], value)
        else:
            base[key] = copy.deepcopy(value) if isinstance(value, (dict, list)) else value
    return base


@dataclass(frozen=True)
class WizardDefinition:
    name: str
    steps: Tuple[Step, ...]
    initial_values: Callable[[], Dict[str, Any]]
    skip_predicates: Dict[str, SkipPredicate] = field(default_factory=dict)
    normalize: Optional[Normalizer] = None

    def sequence(self) -> StepSequence:
        return StepSequence(steps=self.steps, skip_predicates=dict(self.skip_predicates))


def validate_steps(steps: Tuple[Step, ...], values: Mapping[str, Any]) -> None:
    """Check every step of a form at once, as a server-side guard on submissions."""
    errors: List[FieldError] = []
    for step in steps:
        errors.extend(evaluate(step.rules, values))
    if errors:
        raise ValidationError(errors)


class FormWizard:
    """One user's pass through a wizard, with draft autosave."""

    def __init__(
        self,
        definition: WizardDefinition,
        drafts: Optional[DraftStore] = None,
        session_key: Optional[str] = None,
        *,
        context: Optional[Mapping[str, Any]] = None,
        editing: bool = False,
        restore: bool = True,
    ) -> None:
        self.definition = definition
        self.drafts = drafts
        self.session_key = session_key or definition.name
        self.values: Dict[str, Any] = definition.initial_values()
        self.context: Dict[str, Any] = dict(context or {})
        self.context.setdefault("editing", editing)
        self.missing_attachments: List[str] = []
        self.sequencer = StepSequencer(definition.sequence(), self.snapshot)
        self._draft_cleared = False

        if restore and drafts is not None:
            draft = drafts.restore(self.session_key)
            if draft is not None:
                deep_merge(self.values, draft.fields)
                self.missing_attachments = list(draft.attachments)
                self.sequencer.restore(draft.step_index)
                logger.debug("Restored %s draft at step %d", self.session_key, draft.step_index)
        self._normalize()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    def snapshot(self) -> Dict[str, Any]:
        return {**self.values, "context": self.context}

    def _normalize(self) -> None:
        if self.definition.normalize is not None:
            self.definition.normalize(self.values, self.context)

    def _save_draft(self) -> None:
        if self.drafts is None:
            return
        self.drafts.save(self.session_key, self.values, self.sequencer.index)
        self._draft_cleared = False

    def update(self, section: str, values: Any) -> None:
        """Merge ``values`` into a form section (or replace a scalar field) and autosave."""
        if isinstance(values, Mapping) and isinstance(self.values.get(section), dict):
            deep_merge(self.values[section], values)
        else:
            self.values[section] = values
        self._normalize()
        self._save_draft()

    def set_context(self, **data: Any) -> None:
        """Record asynchronously loaded data. Skip predicates see it on the next read."""
        self.context.update(data)
        self._normalize()

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------
    @property
    def current(self) -> Step:
        return self.sequencer.current

    @property
    def errors(self) -> List[FieldError]:
        return self.sequencer.errors

    def advance(self) -> bool:
        moved = self.sequencer.advance()
        if moved:
            self._save_draft()
        return moved

    def retreat(self) -> bool:
        moved = self.sequencer.retreat()
        if moved:
            self._save_draft()
        return moved

    def jump_to(self, step_id: str) -> Step:
        step = self.sequencer.jump_to(step_id)
        self._save_draft()
        return step

    # ------------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------------
    def validate_all(self) -> List[FieldError]:
        snapshot = self.snapshot()
        errors: List[FieldError] = []
        for step in self.sequencer.navigable_steps:
            errors.extend(evaluate(step.rules, snapshot))
        return errors

    def _clear_draft(self) -> None:
        if self._draft_cleared or self.drafts is None:
            return
        self.drafts.clear(self.session_key)
        self._draft_cleared = True

    def discard(self) -> None:
        self._clear_draft()
        self.values = self.definition.initial_values()
        self.missing_attachments = []
        self._normalize()
        self.sequencer.restore(0)

    def submit(self, handler: Callable[[Dict[str, Any]], T]) -> T:
        """
        Validate every visible step and hand the values to ``handler``.

        The draft is cleared only after ``handler`` returns. If it raises, the
        draft stays so the user can retry without re-entering anything.
        """
        errors = self.validate_all()
        if errors:
            raise ValidationError(errors)
        result = handler(self.values)
        self._clear_draft()
        return result


__all__ = ["FormWizard", "Normalizer", "WizardDefinition", "deep_merge", "validate_steps"]
