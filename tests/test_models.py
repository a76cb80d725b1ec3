"""Tests for assetrev.models."""

from __future__ import annotations

from pathlib import Path

import pytest

from assetrev.models import FileRecord, FileState, StateTransitionError


def test_record_moves_forward_and_may_skip_states() -> None:
    record = FileRecord(path=Path("lib.js"), asset_type="js")

    record.advance(FileState.LEVEL_ASSIGNED)
    record.advance(FileState.FINALIZED)

    assert record.state is FileState.FINALIZED


def test_record_cannot_move_backwards() -> None:
    record = FileRecord(path=Path("lib.js"), asset_type="js")
    record.advance(FileState.CONTENT_STABILIZED)

    with pytest.raises(StateTransitionError, match="CONTENT_STABILIZED to LEVEL_ASSIGNED"):
        record.advance(FileState.LEVEL_ASSIGNED)

    assert record.state is FileState.CONTENT_STABILIZED


def test_record_is_relocated_at_most_once() -> None:
    record = FileRecord(path=Path("js/lib.js"), asset_type="js")

    record.relocate(Path("js/0c1d9e17.lib.js"))

    assert record.path == Path("js/0c1d9e17.lib.js")
    assert record.original_path == Path("js/lib.js")
    with pytest.raises(StateTransitionError, match="already revisioned"):
        record.relocate(Path("js/ffffffff.0c1d9e17.lib.js"))
    assert record.path == Path("js/0c1d9e17.lib.js")
