"""Tests for document-order record assembly"""

import pytest

from bic_exporter.processors.record_assembly import assemble_records
from bic_exporter.utils.validation import RecordArityError


def record(tag):
    return [tag] + [""] * 9


class TestAssembleRecords:

    def test_page_order(self):
        assembled = assemble_records({3: [record("c")], 1: [record("a"), record("b")]})
        assert [r[0] for r in assembled] == ["a", "b", "c"]

    def test_pairs_input(self):
        assembled = assemble_records([(2, [record("y")]), (0, [record("x")])])
        assert [r[0] for r in assembled] == ["x", "y"]

    def test_empty_pages(self):
        assert assemble_records({0: [], 1: []}) == []

    def test_arity_checked(self):
        with pytest.raises(RecordArityError) as exc_info:
            assemble_records({4: [record("ok"), ["short"]]})
        assert "page 5" in str(exc_info.value)

    def test_duplicate_page(self):
        with pytest.raises(ValueError):
            assemble_records([(0, []), (0, [])])

    def test_records_copied(self):
        source = record("a")
        assembled = assemble_records({0: [source]})
        assembled[0][1] = "changed"
        assert source[1] == ""
