"""Tests for the constant column headers"""

import bic_exporter
from bic_exporter import headers
from bic_exporter.constants.bic_columns import COLUMN_COUNT, FIELD_KEYS


class TestHeaders:

    def test_exact_header_list(self):
        assert headers() == [
            "Record creation date",
            "Last Update date",
            "BIC",
            "Brch Code",
            "Full legal name",
            "Registered address",
            "Operational address",
            "Branch description",
            "Branch address",
            "Instit. Type",
        ]

    def test_headers_match_column_count(self):
        assert len(headers()) == COLUMN_COUNT == len(FIELD_KEYS) == 10

    def test_returned_list_is_a_copy(self):
        first = headers()
        first.append("extra")
        assert len(headers()) == 10

    def test_package_exports(self):
        for name in ("headers", "extract_table_from_path", "extract_table_from_binary", "convert_to_csv"):
            assert callable(getattr(bic_exporter, name))
        assert bic_exporter.__version__ == "0.1.2"
