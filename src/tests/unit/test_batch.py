"""Tests for the batch driver."""

import pytest

from attachsync.core.batch import BatchReport, process_all_in_scope
from attachsync.core.engine import ReconciliationEngine
from attachsync.core.types import ScopeMode


@pytest.mark.asyncio
async def test_processes_notes_in_scope(memory_vault, make_settings, fixed_today):
    """Only in-scope notes are processed, in enumeration order."""
    settings = make_settings(scope_mode=ScopeMode.INCLUDE, watched_paths=["Active"])
    engine = ReconciliationEngine(memory_vault, lambda: settings, today=fixed_today)
    memory_vault.add_file("Active/a.png")
    memory_vault.add_file("Archive/b.png")
    memory_vault.add_note("Active/One.md", embeds=["a.png"])
    memory_vault.add_note("Active/Two.md")
    memory_vault.add_note("Archive/Three.md", embeds=["b.png"])
    messages = []

    report = await process_all_in_scope(engine, lambda: settings, messages.append)

    assert report == BatchReport(notes=2, renamed=1)
    assert memory_vault.renames == [("Active/a.png", "Active/attachments/One a.png")]
    assert messages == [
        "Processing 2 notes...",
        "Processed 2 notes, renamed 1 attachments",
    ]


@pytest.mark.asyncio
async def test_no_notes_in_scope(memory_vault, make_settings):
    settings = make_settings(scope_mode=ScopeMode.INCLUDE, watched_paths=["Active"])
    engine = ReconciliationEngine(memory_vault, lambda: settings)
    memory_vault.add_note("Elsewhere/N.md")
    messages = []

    report = await process_all_in_scope(engine, lambda: settings, messages.append)

    assert report == BatchReport(notes=0, renamed=0)
    assert messages == ["No notes found in the configured scope"]


@pytest.mark.asyncio
async def test_shared_attachment_follows_first_note(memory_vault, make_settings, fixed_today):
    """Sequential passes: the first note to reference an attachment names it,
    later notes see the renamed file."""
    settings = make_settings()
    engine = ReconciliationEngine(memory_vault, lambda: settings, today=fixed_today)
    memory_vault.add_file("shared.png")
    memory_vault.add_note("A.md", embeds=["shared.png"])
    memory_vault.add_note("B.md", embeds=["shared.png"])

    report = await process_all_in_scope(engine, lambda: settings, lambda message: None)

    assert report.notes == 2
    assert memory_vault.renames[0] == ("shared.png", "attachments/A shared.png")
    assert memory_vault.renames[1] == (
        "attachments/A shared.png",
        "attachments/B A shared.png",
    )
