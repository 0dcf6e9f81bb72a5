"""
Workflow: password resolution, batch processing and the session FSM.
"""

from wc_envc.workflow.batch import (
    BatchReport,
    BatchWorkflow,
    Failed,
    FileJob,
    Outcome,
    OverwritePolicy,
    Skipped,
    Written,
)
from wc_envc.workflow.password import PasswordResolver
from wc_envc.workflow.prompts import Prompter, TerminalPrompter
from wc_envc.workflow.session import Session, SessionOptions, SessionState

__all__ = [
    "BatchReport",
    "BatchWorkflow",
    "Failed",
    "FileJob",
    "Outcome",
    "OverwritePolicy",
    "PasswordResolver",
    "Prompter",
    "Session",
    "SessionOptions",
    "SessionState",
    "Skipped",
    "TerminalPrompter",
    "Written",
]
