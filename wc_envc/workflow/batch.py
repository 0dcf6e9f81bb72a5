"""
Batch Workflow
==============

Processes a list of files under one password, strictly in order.

Each file ends in exactly one Outcome: Written, Skipped or Failed. A
failing file never stops the files after it, and never leaves partial
output behind. The run as a whole succeeds only if every file was
written.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Sequence, Union

from wc_envc.core.crypto.engine import DerivedKey, Direction, EncryptionEngine
from wc_envc.core.envfile import EnvFile, LineCodec, ValidationWarning, precheck
from wc_envc.core.errors import (
    AppearsAlreadyEncryptedError,
    EnvcError,
    FileAccessError,
    OutputExistsError,
)
from wc_envc.workflow.prompts import Prompter

logger = logging.getLogger(__name__)


class OverwritePolicy(Enum):
    """
    How confirmations are answered during processing.

    Governs both overwriting an existing output file and re-encrypting a
    file that already looks encrypted.
    """

    ASK = "ask"  # ask the operator
    ASSUME_YES = "assume_yes"  # --yes
    REFUSE = "refuse"  # no terminal and no --yes


@dataclass(frozen=True)
class FileJob:
    input_path: Path
    output_path: Path
    overwrite_authorized: bool = False


@dataclass(frozen=True)
class Written:
    input_path: Path
    output_path: Path
    variable_count: int


@dataclass(frozen=True)
class Skipped:
    input_path: Path
    reason: str


@dataclass(frozen=True)
class Failed:
    input_path: Path
    error: EnvcError


Outcome = Union[Written, Skipped, Failed]


@dataclass
class BatchReport:
    """Ordered outcomes of one run with the aggregate folds over them."""

    direction: Direction
    outcomes: List[Outcome] = field(default_factory=list)

    @property
    def succeeded(self) -> List[Written]:
        return [o for o in self.outcomes if isinstance(o, Written)]

    @property
    def skipped(self) -> List[Skipped]:
        return [o for o in self.outcomes if isinstance(o, Skipped)]

    @property
    def failed(self) -> List[Failed]:
        return [o for o in self.outcomes if isinstance(o, Failed)]

    @property
    def ok(self) -> bool:
        return bool(self.outcomes) and all(isinstance(o, Written) for o in self.outcomes)

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1


class BatchWorkflow:
    """
    Validate, transform and atomically write each file of a batch.

    Usage:
        workflow = BatchWorkflow(engine, key, prompter, OverwritePolicy.ASSUME_YES)
        report = workflow.run(jobs, Direction.ENCRYPT)
        sys.exit(report.exit_code)
    """

    def __init__(
        self,
        engine: EncryptionEngine,
        key: DerivedKey,
        prompter: Prompter,
        overwrite: OverwritePolicy = OverwritePolicy.ASK,
    ) -> None:
        self._engine = engine
        self._codec = LineCodec(engine)
        self._key = key
        self._prompter = prompter
        self._overwrite = overwrite

    def run(self, jobs: Sequence[FileJob], direction: Direction, report: BatchReport | None = None) -> BatchReport:
        """
        Process every job in order and collect one Outcome per job.

        Args:
            jobs: Files to process, in selection order
            direction: Encrypt or decrypt
            report: Existing report to append to (e.g. holding files
                already skipped during confirmation)
        """
        report = report or BatchReport(direction=direction)
        for job in jobs:
            outcome = self.process(job, direction)
            report.outcomes.append(outcome)
            self._announce(outcome)
        return report

    def process(self, job: FileJob, direction: Direction) -> Outcome:
        """Process one file. Per-file errors become a Failed outcome."""
        try:
            return self._process(job, direction)
        except EnvcError as e:
            logger.info("%s failed: %s", job.input_path, e.message)
            return Failed(job.input_path, e)
        except OSError as e:
            logger.info("%s failed with OS error: %s", job.input_path, e)
            return Failed(
                job.input_path,
                FileAccessError(job.input_path, f"Cannot process {job.input_path}: {e.strerror or e}"),
            )

    def _process(self, job: FileJob, direction: Direction) -> Outcome:
        env_file = EnvFile.read(job.input_path)
        warnings = precheck(env_file, direction, self._engine, self._key)

        if ValidationWarning.APPEARS_ALREADY_ENCRYPTED in warnings:
            if not self._confirm(
                f"{job.input_path} appears to be already encrypted. Encrypt it again?",
                AppearsAlreadyEncryptedError(f"{job.input_path} appears to be already encrypted"),
            ):
                return Skipped(job.input_path, "appears already encrypted")

        if job.output_path.exists() and not job.overwrite_authorized:
            if not self._confirm(
                f"File {job.output_path} already exists. Overwrite?",
                OutputExistsError(job.output_path),
            ):
                return Skipped(job.input_path, f"{job.output_path} exists, overwrite declined")

        transformed = self._codec.transform_file(env_file, direction, self._key)
        transformed.write_atomic(job.output_path)

        logger.info("%s %s -> %s", direction.past, job.input_path, job.output_path)
        return Written(job.input_path, job.output_path, env_file.variable_count)

    def _confirm(self, question: str, refusal: EnvcError) -> bool:
        """
        Answer a confirmation according to the policy.

        Returns False when the operator declines; raises ``refusal`` when
        the policy forbids asking.
        """
        if self._overwrite is OverwritePolicy.ASSUME_YES:
            logger.warning("%s (assumed yes)", question)
            return True
        if self._overwrite is OverwritePolicy.REFUSE:
            raise refusal
        return self._prompter.confirm(question, default=False)

    def _announce(self, outcome: Outcome) -> None:
        if isinstance(outcome, Written):
            self._prompter.success(
                f"{outcome.input_path.name} → {outcome.output_path.name} ({outcome.variable_count} vars)"
            )
        elif isinstance(outcome, Skipped):
            self._prompter.warning(f"Skipped {outcome.input_path.name}: {outcome.reason}")
        else:
            self._prompter.error(f"{outcome.input_path.name}: {outcome.error.message}")
