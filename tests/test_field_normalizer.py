"""Tests for record canonicalization"""

import pytest

from bic_exporter.engine.config import TableLayoutOptions
from bic_exporter.processors.field_normalizer import normalize_date, normalize_record
from bic_exporter.utils.validation import RecordIntegrityError

FORMATS = TableLayoutOptions().date_formats

RAW = ["1997-03-01", "2024-06-06", "AAAARSBG", "XXX", "YETTEL  BANK AD",
       "88 OMLADINSKIH BRIGADA\nBEOGRAD", "", "", "", "FIIN"]


class TestNormalizeDate:

    @pytest.mark.parametrize("value,expected", [
        ("1997-03-01", "1997-03-01"),
        ("1997/03/01", "1997-03-01"),
        ("01/03/1997", "1997-03-01"),
        ("01.03.1997", "1997-03-01"),
        ("  2024-06-06 ", "2024-06-06"),
    ])
    def test_accepted_formats(self, value, expected):
        assert normalize_date(value, FORMATS) == expected

    @pytest.mark.parametrize("value", ["2024-13-45", "2023-02-29", "", "yesterday", "2024-06-06 extra"])
    def test_rejected(self, value):
        with pytest.raises(RecordIntegrityError) as exc_info:
            normalize_date(value, FORMATS, column=1)
        assert exc_info.value.column == 1
        assert "Last Update date" in str(exc_info.value)


class TestNormalizeRecord:

    def test_canonical_record(self):
        record = normalize_record(RAW)
        assert record == ["1997-03-01", "2024-06-06", "AAAARSBG", "XXX", "YETTEL BANK AD",
                          "88 OMLADINSKIH BRIGADA BEOGRAD", "", "", "", "FIIN"]

    def test_short_record_padded(self):
        record = normalize_record(["1997-03-01", "2024-06-06", "AAAARSBG"])
        assert len(record) == 10
        assert record[3:] == [""] * 7

    def test_too_many_cells(self):
        with pytest.raises(RecordIntegrityError):
            normalize_record(RAW + ["extra"])

    def test_invalid_date(self):
        raw = list(RAW)
        raw[0] = "2024-13-45"
        with pytest.raises(RecordIntegrityError) as exc_info:
            normalize_record(raw)
        assert exc_info.value.column == 0
        assert exc_info.value.value == "2024-13-45"

    def test_invalid_bic(self):
        raw = list(RAW)
        raw[2] = "AAAA RS"
        with pytest.raises(RecordIntegrityError, match="Invalid BIC"):
            normalize_record(raw)

    def test_bic_check_can_be_disabled(self):
        raw = list(RAW)
        raw[2] = "not-a-bic"
        record = normalize_record(raw, TableLayoutOptions(validate_bic=False))
        assert record[2] == "not-a-bic"

    def test_custom_date_formats(self):
        raw = list(RAW)
        raw[0] = "March 1, 1997"
        options = TableLayoutOptions(date_formats=("%B %d, %Y",))
        with pytest.raises(RecordIntegrityError):
            normalize_record(raw, options)
        raw[1] = "June 6, 2024"
        assert normalize_record(raw, options)[:2] == ["1997-03-01", "2024-06-06"]
