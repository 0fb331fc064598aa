"""Tests for truth spoofing and the index freshness check it works around."""

import pytest

from wiki_truth_sync.errors import StaleWriteError
from wiki_truth_sync.index import MemorySemanticStore
from wiki_truth_sync.sync.models import DocumentRef, StructuredData
from wiki_truth_sync.sync.spoofer import stamp

DOC = DocumentRef(title="Widget")


def _data(version: int, source: int | None = None) -> StructuredData:
    return StructuredData(
        document=DOC,
        facts={"X": [0]},
        version_stamp=version,
        source_revision_id=source if source is not None else version,
    )


def test_stamp_sets_version_and_keeps_source():
    stamped = stamp(_data(4), 10)
    assert stamped.version_stamp == 10
    assert stamped.source_revision_id == 4
    assert stamped.facts == {"X": [0]}


def test_stamp_does_not_mutate_input():
    original = _data(4)
    stamp(original, 10)
    assert original.version_stamp == 4


def test_unstamped_approved_data_is_refused():
    index = MemorySemanticStore()
    index.update_data(_data(10))
    index.clear_data(DOC)

    with pytest.raises(StaleWriteError) as excinfo:
        index.update_data(_data(4))
    assert excinfo.value.stamp == 4
    assert excinfo.value.watermark == 10


def test_stamped_approved_data_is_accepted():
    index = MemorySemanticStore()
    index.update_data(_data(10))
    index.clear_data(DOC)

    index.update_data(stamp(_data(4), 10))

    stored = index.get_data(DOC)
    assert stored.values("X") == [0]
    assert stored.version_stamp == 10
    assert stored.source_revision_id == 4
