"""Batch driver - reconciles every note in scope, one after another."""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from attachsync.core.engine import ReconciliationEngine
from attachsync.core.scope import is_scope_valid
from attachsync.core.settings import Settings
from attachsync.core.types import Notifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchReport:
    """Outcome of a batch run."""

    notes: int
    renamed: int


async def process_all_in_scope(
    engine: ReconciliationEngine,
    settings_provider: Callable[[], Settings],
    notify: Notifier,
) -> BatchReport:
    """
    Reconcile all notes in scope sequentially, in enumeration order.

    Args:
        engine: Engine used for each note
        settings_provider: Returns the current settings snapshot
        notify: Receives the start and summary notifications

    Returns:
        Number of notes processed and attachments renamed
    """
    settings = settings_provider()
    notes = [n for n in engine.host.list_notes() if is_scope_valid(n.path, settings)]

    if not notes:
        notify("No notes found in the configured scope")
        return BatchReport(notes=0, renamed=0)

    notify(f"Processing {len(notes)} notes...")
    total = 0
    for note in notes:
        total += await engine.process_note_attachments(note, None)

    logger.info(f"Batch finished: {len(notes)} notes, {total} renamed")
    notify(f"Processed {len(notes)} notes, renamed {total} attachments")
    return BatchReport(notes=len(notes), renamed=total)
