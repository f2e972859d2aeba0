"""Wizard plumbing: step sequencing, validation rules and form drafts."""

from .drafts import DraftStore, FormDraft
from .rules import evaluate, validate
from .sequencer import Step, StepSequence, StepSequencer

__all__ = [
    "DraftStore",
    "FormDraft",
    "Step",
    "StepSequence",
    "StepSequencer",
    "evaluate",
    "validate",
]
