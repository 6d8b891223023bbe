from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum

from .models import RemovalSet

logger = logging.getLogger(__name__)

PromptFn = Callable[[str], str]


class GateState(str, Enum):
    DETECTED = "detected"
    AWAITING_INPUT = "awaiting_input"
    APPROVED = "approved"
    ABORTED = "aborted"


class ConfirmationGate:
    """All-or-nothing operator approval over the combined removal set."""

    def __init__(self, *, auto_confirm: bool, prompt: PromptFn | None = None) -> None:
        self.auto_confirm = auto_confirm
        self._prompt = prompt or input
        self.state = GateState.DETECTED

    def decide(self, removal_set: RemovalSet, *, target: str | None = None) -> GateState:
        self.state = GateState.DETECTED
        if self.auto_confirm:
            self.state = GateState.APPROVED
            return self.state

        self.state = GateState.AWAITING_INPUT
        where = f" from {target}" if target else ""
        question = (
            f"Are you sure you want to remove {len(removal_set)} records{where}? "
            "Type 'yes' to confirm: "
        )
        try:
            answer = self._prompt(question)
        except EOFError:
            answer = ""
        self.state = GateState.APPROVED if answer.strip().lower() == "yes" else GateState.ABORTED
        if self.state is GateState.ABORTED:
            logger.info("Removal declined; no records were changed")
        return self.state

    @property
    def approved(self) -> bool:
        return self.state is GateState.APPROVED
