"""Resolution of name collisions at the destination."""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import AbstractSet, Callable, Optional

import click

logger = logging.getLogger(__name__)


class DuplicateAction(Enum):
    """What to do with a file whose name already exists at the destination."""
    SKIP = 'skip'
    OVERWRITE = 'overwrite'
    RENAME = 'rename'


@dataclass(frozen=True)
class DuplicateDecision:
    """An action, optionally fixed for every later collision in the run."""
    action: DuplicateAction
    apply_to_all: bool = False


SKIP = DuplicateDecision(DuplicateAction.SKIP)

DecisionSource = Callable[[Path, Path], DuplicateDecision]


class DuplicateResolver:
    """Decides how to handle an existing destination file.

    The automatic policy always skips. The interactive policy asks the
    decision source on each collision until an apply-to-all decision is
    given, which then answers every remaining collision of the run.
    Only the file name is compared, never the content.
    """

    def __init__(self, interactive: bool = False, decision_source: Optional[DecisionSource] = None):
        if interactive and decision_source is None:
            decision_source = prompt_duplicate_decision
        self.interactive = interactive
        self.decision_source = decision_source
        self._decision_for_all: Optional[DuplicateDecision] = None

    def reset(self) -> None:
        """Forget any apply-to-all decision; called at the start of a run."""
        self._decision_for_all = None

    @property
    def decision_for_all(self) -> Optional[DuplicateDecision]:
        return self._decision_for_all

    def resolve(self, source: Path, target: Path) -> DuplicateDecision:
        """
        Decide what to do with ``source`` when ``target`` already exists.

        Args:
            source: File on the card
            target: Existing destination path

        Returns:
            The decision to apply to this file
        """
        if not self.interactive:
            return SKIP

        if self._decision_for_all is not None:
            return self._decision_for_all

        decision = self.decision_source(source, target)
        if decision.apply_to_all:
            logger.info(f"Applying '{decision.action.value}' to all remaining duplicates")
            self._decision_for_all = decision
        return decision


def unique_target_path(target: Path, reserved: AbstractSet[Path] = frozenset()) -> Path:
    """
    Find the first free name of the form ``name_N.ext``, counting from 1.

    Args:
        target: Existing destination path
        reserved: Paths taken without existing on disk yet (dry-run plans)

    Returns:
        Path in the same directory that does not exist yet
    """
    stem, suffix = target.stem, target.suffix
    counter = 1
    while True:
        candidate = target.with_name(f"{stem}_{counter}{suffix}")
        if not candidate.exists() and candidate not in reserved:
            return candidate
        counter += 1


_ACTION_KEYS = {
    's': DuplicateAction.SKIP,
    'o': DuplicateAction.OVERWRITE,
    'r': DuplicateAction.RENAME,
}


def prompt_duplicate_decision(source: Path, target: Path) -> DuplicateDecision:
    """Ask on the terminal what to do with a duplicate."""
    click.echo()
    click.echo(f"File already exists: {target.name}")
    click.echo(f"Source: {source}")
    click.echo(f"Target: {target}")
    click.echo()
    click.echo("Choose action:")
    click.echo("  (s) Skip - keep existing file")
    click.echo("  (o) Overwrite - replace with new file")
    click.echo("  (r) Rename - add suffix (_1, _2, etc.)")
    click.echo("  (a) Apply choice to all remaining duplicates")

    choice = click.prompt(
        "Action",
        type=click.Choice(['s', 'o', 'r', 'a'], case_sensitive=False),
    ).lower()
    if choice != 'a':
        return DuplicateDecision(_ACTION_KEYS[choice])

    choice = click.prompt(
        "Apply which action to all?",
        type=click.Choice(['s', 'o', 'r'], case_sensitive=False),
    ).lower()
    return DuplicateDecision(_ACTION_KEYS[choice], apply_to_all=True)
