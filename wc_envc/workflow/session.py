"""
Session State Machine
=====================

Drives one invocation from file selection to the final report:

    IDLE -> SELECTING -> CONFIRMING -> PASSWORD_ENTRY -> PROCESSING
         -> REPORTING -> DONE

``ABORTED`` is reachable from SELECTING (nothing chosen), CONFIRMING
(every output declined) and PASSWORD_ENTRY (no usable password).

The same machine runs menu-driven sessions and flag-driven or piped
one-shot runs; they differ only in the prompter, the preselected files
and the overwrite policy. The password and derived key are tracked by a
MemoryGuard for the whole run and wiped as soon as processing ends, or
on any exception including KeyboardInterrupt.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, FrozenSet, List, Optional

from wc_envc.core.config import EnvcConfig
from wc_envc.core.crypto.engine import DerivedKey, Direction, EncryptionEngine
from wc_envc.core.errors import EnvcError, InputNotFoundError, OperationCancelled
from wc_envc.core.memory import MemoryGuard
from wc_envc.utils import gitignore
from wc_envc.utils.paths import count_variables, default_output_name, find_env_files
from wc_envc.workflow.batch import BatchReport, BatchWorkflow, FileJob, OverwritePolicy, Skipped
from wc_envc.workflow.password import PasswordResolver
from wc_envc.workflow.prompts import Prompter

logger = logging.getLogger(__name__)


class SessionState(Enum):
    IDLE = "idle"
    SELECTING = "selecting"
    CONFIRMING = "confirming"
    PASSWORD_ENTRY = "password_entry"
    PROCESSING = "processing"
    REPORTING = "reporting"
    DONE = "done"
    ABORTED = "aborted"


TERMINAL_STATES: FrozenSet[SessionState] = frozenset({SessionState.DONE, SessionState.ABORTED})

TRANSITIONS: Dict[SessionState, FrozenSet[SessionState]] = {
    SessionState.IDLE: frozenset({SessionState.SELECTING}),
    SessionState.SELECTING: frozenset({SessionState.CONFIRMING, SessionState.ABORTED}),
    SessionState.CONFIRMING: frozenset({SessionState.PASSWORD_ENTRY, SessionState.ABORTED}),
    SessionState.PASSWORD_ENTRY: frozenset({SessionState.PROCESSING, SessionState.ABORTED}),
    SessionState.PROCESSING: frozenset({SessionState.REPORTING}),
    SessionState.REPORTING: frozenset({SessionState.DONE}),
    SessionState.DONE: frozenset(),
    SessionState.ABORTED: frozenset(),
}

# States whose failure ends the run instead of being recorded per file
_ABORTABLE: FrozenSet[SessionState] = frozenset({
    SessionState.SELECTING, SessionState.CONFIRMING, SessionState.PASSWORD_ENTRY,
})


@dataclass
class SessionOptions:
    """
    What the CLI decided before the session starts.

    Attributes:
        direction: Encrypt or decrypt
        files: Preselected input files; empty means scan ``working_dir``
        output: Explicit output path (only with exactly one file)
        password: Password given on the command line
        overwrite: How confirmations are answered
        review_outputs: Ask "Proceed with these output files?" first
        working_dir: Directory scanned for candidates and holding .gitignore
    """

    direction: Direction
    files: List[Path] = field(default_factory=list)
    output: Optional[Path] = None
    password: Optional[str] = None
    overwrite: OverwritePolicy = OverwritePolicy.ASK
    review_outputs: bool = False
    working_dir: Path = field(default_factory=Path.cwd)

    def __post_init__(self) -> None:
        if self.output is not None and len(self.files) != 1:
            raise ValueError("An explicit output requires exactly one input file")


class Session:
    """
    Explicit finite-state machine for one invocation.

    Usage:
        session = Session(options, prompter)
        exit_code = session.run()
        session.history   # [IDLE, SELECTING, CONFIRMING, ...]
    """

    def __init__(
        self,
        options: SessionOptions,
        prompter: Prompter,
        resolver: Optional[PasswordResolver] = None,
        engine: Optional[EncryptionEngine] = None,
        config: Optional[EnvcConfig] = None,
    ) -> None:
        config = config or EnvcConfig.get_instance()
        self.options = options
        self.config = config
        self._prompter = prompter
        self._resolver = resolver or PasswordResolver(prompter, config)
        self._engine = engine or EncryptionEngine(config.kdf)

        self.state = SessionState.IDLE
        self.history: List[SessionState] = [SessionState.IDLE]
        self.selected: List[Path] = []
        self.jobs: List[FileJob] = []
        self.report = BatchReport(direction=options.direction)
        self.error: Optional[EnvcError] = None

        self._guard = MemoryGuard()
        self._key: Optional[DerivedKey] = None
        self._password_source: Optional[str] = None

        self._handlers: Dict[SessionState, Callable[[], SessionState]] = {
            SessionState.SELECTING: self._select,
            SessionState.CONFIRMING: self._confirm,
            SessionState.PASSWORD_ENTRY: self._enter_password,
            SessionState.PROCESSING: self._process,
            SessionState.REPORTING: self._report,
        }

    # ------------------------------------------------------------------
    # Driver
    # ------------------------------------------------------------------

    @property
    def exit_code(self) -> int:
        if self.state is SessionState.DONE:
            return self.report.exit_code
        return 1

    def run(self) -> int:
        """Run to a terminal state and return the process exit status."""
        with self._guard:
            self._transition(SessionState.SELECTING)
            while self.state not in TERMINAL_STATES:
                current = self.state
                try:
                    next_state = self._handlers[current]()
                except EnvcError as e:
                    if current not in _ABORTABLE:
                        raise
                    logger.info("Session aborted in %s: %s", current.value, e.message)
                    self.error = e
                    next_state = SessionState.ABORTED
                self._transition(next_state)
        return self.exit_code

    def _transition(self, next_state: SessionState) -> None:
        if next_state not in TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal transition {self.state.value} -> {next_state.value}")
        logger.debug("Session %s -> %s", self.state.value, next_state.value)
        self.state = next_state
        self.history.append(next_state)

    # ------------------------------------------------------------------
    # States
    # ------------------------------------------------------------------

    def _select(self) -> SessionState:
        if self.options.files:
            missing = [p for p in self.options.files if not p.is_file()]
            if missing:
                raise InputNotFoundError(missing[0])
            self.selected = list(self.options.files)
        else:
            self.selected = self._choose_from_directory()

        if not self.selected:
            raise OperationCancelled("No files selected")

        self.jobs = [
            FileJob(path, self.options.output or default_output_name(path, self.options.direction))
            for path in self.selected
        ]
        return SessionState.CONFIRMING

    def _choose_from_directory(self) -> List[Path]:
        direction = self.options.direction
        candidates = find_env_files(self.options.working_dir, direction)
        kind = ".env" if direction is Direction.ENCRYPT else "encrypted .env"
        if not candidates:
            raise EnvcError(f"No {kind} files found in {self.options.working_dir}")

        labels = [f"{p.name} ({count_variables(p)} vars)" for p in candidates]
        self._prompter.info(f"Found {len(candidates)} {kind} file(s):")
        for label in labels:
            self._prompter.info(f"  • {label}")

        choice = self._prompter.choose(
            "Choose an option",
            [f"All files ({len(candidates)})", "Select individual files", "Quit"],
            default=0,
        )
        if choice == 0:
            return candidates
        if choice == 1:
            picks = self._prompter.choose_many("Select files", labels)
            return [candidates[i] for i in picks]
        raise OperationCancelled()

    def _confirm(self) -> SessionState:
        self._prompter.info("Output files:")
        for job in self.jobs:
            self._prompter.info(f"  • {job.input_path.name} → {job.output_path.name}")

        if self.options.review_outputs and self.options.overwrite is OverwritePolicy.ASK:
            if not self._prompter.confirm("Proceed with these output files?", default=True):
                raise OperationCancelled()

        confirmed: List[FileJob] = []
        for job in self.jobs:
            if not job.output_path.exists() or self.options.overwrite is not OverwritePolicy.ASK:
                # REFUSE is enforced per file by the batch
                confirmed.append(job)
            elif self._prompter.confirm(f"File {job.output_path} already exists. Overwrite?", default=False):
                confirmed.append(FileJob(job.input_path, job.output_path, overwrite_authorized=True))
            else:
                self.report.outcomes.append(
                    Skipped(job.input_path, f"{job.output_path} exists, overwrite declined")
                )

        self.jobs = confirmed
        if not self.jobs:
            raise OperationCancelled()
        return SessionState.PASSWORD_ENTRY

    def _enter_password(self) -> SessionState:
        secret = self._guard.track(
            self._resolver.resolve(self.options.direction, self.options.password)
        )
        self._password_source = secret.source
        self._key = self._guard.track(self._engine.derive_key(secret))
        # Only the key is needed from here on
        secret.wipe()
        return SessionState.PROCESSING

    def _process(self) -> SessionState:
        direction = self.options.direction
        self._prompter.info(f"{direction.verb} {len(self.jobs)} file(s)...")
        try:
            workflow = BatchWorkflow(self._engine, self._key, self._prompter, self.options.overwrite)
            workflow.run(self.jobs, direction, report=self.report)
        finally:
            self._guard.wipe_all()
            self._key = None
        return SessionState.REPORTING

    def _report(self) -> SessionState:
        report = self.report
        direction = report.direction

        if report.succeeded:
            self._prompter.success(f"Done! {direction.past} {len(report.succeeded)} file(s)")
        for skipped in report.skipped:
            self._prompter.warning(f"Skipped: {skipped.input_path} ({skipped.reason})")
        if report.failed:
            self._prompter.error(f"{len(report.failed)} file(s) failed:")
            for failed in report.failed:
                self._prompter.error(f"  {failed.input_path}: {failed.error.message}")

        if direction is Direction.ENCRYPT and report.succeeded:
            self._offer_gitignore([w.input_path for w in report.succeeded])
            if self._password_source == "prompt":
                env_var = self.config.app.password_env_var
                self._prompter.info(f'Tip: To skip the password prompt next time: export {env_var}="your_password"')

        return SessionState.DONE

    def _offer_gitignore(self, sources: List[Path]) -> None:
        if not self._prompter.interactive:
            return
        path = self.options.working_dir / ".gitignore"
        names = [p.name for p in sources]
        missing = gitignore.missing_entries(names, path)
        if not missing:
            return

        self._prompter.info("The following source files are not in .gitignore:")
        for name in missing:
            self._prompter.info(f"  • {name}")
        if self._prompter.confirm("Add them to .gitignore?", default=True):
            added = gitignore.append_entries(missing, path)
            self._prompter.success(f"Added {len(added)} file(s) to .gitignore")
