"""Verification loop: start the target, read its log, correct until clean or out of budget."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Protocol

from codeloop import log
from codeloop.config import MAX_ATTEMPTS
from codeloop.errors import failure_lines
from codeloop.tasks.model import Task

START_ACTION = "start"
GET_LOG_ACTION = "get-log"


class VerifyState(str, Enum):
    RUNNING = "running"
    CHECKING = "checking"
    CORRECTING = "correcting"
    SATISFIED = "satisfied"
    EXHAUSTED = "exhausted"


TERMINAL_STATES = (VerifyState.SATISFIED, VerifyState.EXHAUSTED)


class CommandSender(Protocol):
    def send(self, action: str, parameters: dict[str, Any] | None = None, *, check_errors: bool = True) -> str: ...


class VersionControl(Protocol):
    def commit_and_push(self, message: str) -> bool: ...

    def reset_hard(self) -> bool: ...


# Called with the originating task and the failure lines of the last check.
Corrector = Callable[[Task, list[str]], Any]


@dataclass
class VerifyOutcome:
    state: VerifyState
    checks: int = 0
    corrections: int = 0
    transitions: list[VerifyState] = field(default_factory=list)
    error_lines: list[str] = field(default_factory=list)
    committed: bool = False
    reverted: bool = False
    # checks whose get-log came back empty (also what a transport failure yields)
    empty_logs: int = 0

    @property
    def satisfied(self) -> bool:
        return self.state == VerifyState.SATISFIED


class VerificationLoop:
    """Explicit state machine around the target's ``start``/``get-log`` actions.

    ``RUNNING`` sends ``start`` once. ``CHECKING`` sends ``get-log`` and looks
    for lines containing ``Error`` or ``Exception``. Each failing check spends
    one attempt in ``CORRECTING``; a failing check with no attempts left is
    ``EXHAUSTED``. A clean check is ``SATISFIED``.
    """

    def __init__(
        self,
        protocol: CommandSender,
        corrector: Corrector,
        vcs: VersionControl | None = None,
        max_attempts: int = MAX_ATTEMPTS,
    ) -> None:
        self.protocol = protocol
        self.corrector = corrector
        self.vcs = vcs
        self.max_attempts = max_attempts

    def run(self, task: Task) -> VerifyOutcome:
        state = VerifyState.RUNNING
        remaining = self.max_attempts
        outcome = VerifyOutcome(state=state, transitions=[state])
        errors: list[str] = []

        while state not in TERMINAL_STATES:
            match state:
                case VerifyState.RUNNING:
                    log.info(f"[verify] Starting target for task: {task.name}")
                    self.protocol.send(START_ACTION)
                    state = VerifyState.CHECKING

                case VerifyState.CHECKING:
                    outcome.checks += 1
                    output = self.protocol.send(GET_LOG_ACTION, check_errors=False)
                    if not output.strip():
                        outcome.empty_logs += 1
                        log.warn(f"[verify] Empty log on check {outcome.checks}; target may be unreachable")
                    errors = failure_lines(output)
                    if not errors:
                        state = VerifyState.SATISFIED
                    elif remaining > 0:
                        log.warn(f"[verify] {len(errors)} error line(s) on check {outcome.checks}")
                        for line in errors:
                            log.debug(f"  {line}")
                        state = VerifyState.CORRECTING
                    else:
                        state = VerifyState.EXHAUSTED

                case VerifyState.CORRECTING:
                    try:
                        self.corrector(task, errors)
                    except Exception as e:
                        log.error(f"[verify] Correction for '{task.name}' failed: {e}")
                    outcome.corrections += 1
                    remaining -= 1
                    state = VerifyState.CHECKING

            outcome.transitions.append(state)

        outcome.state = state
        outcome.error_lines = errors

        if state == VerifyState.SATISFIED:
            log.success(f"[verify] Task satisfied after {outcome.checks} check(s): {task.name}")
            if self.vcs is not None:
                outcome.committed = self.vcs.commit_and_push(task.name)
        else:
            log.error(f"[verify] Attempts exhausted for task: {task.name}")
            if self.vcs is not None:
                outcome.reverted = self.vcs.reset_hard()
        return outcome
