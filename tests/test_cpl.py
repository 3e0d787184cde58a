"""Tests for pick-and-place conversion and fixup compensation."""

import csv
import io
import math

import pytest

from kicad_fab.exceptions import ParseError, SchemaError
from kicad_fab.export.cpl import (
    CPL_INPUT_HEADER,
    CPL_OUTPUT_HEADER,
    PlacementRow,
    Side,
    compensate,
    convert_cpl,
    convert_cpl_stream,
)
from kicad_fab.fixups import CorrectiveTransform

HEADER = ",".join(CPL_INPUT_HEADER) + "\n"


def _row(x=10.0, y=20.0, rotation=0.0, side=Side.TOP, designator="U1"):
    return PlacementRow(designator, "val", "pkg", x, y, rotation, side)


def _convert(text, fixup_set=None, **kwargs):
    dst = io.StringIO()
    result = convert_cpl_stream(io.StringIO(text), dst, fixup_set or {}, **kwargs)
    return result, list(csv.reader(io.StringIO(dst.getvalue())))


class TestHeaders:
    """Tests for CPL header constants."""

    def test_input_header(self):
        assert CPL_INPUT_HEADER == ["Ref", "Val", "Package", "PosX", "PosY", "Rot", "Side"]

    def test_output_header(self):
        assert CPL_OUTPUT_HEADER == ["Designator", "Val", "Package", "Mid X", "Mid Y", "Rotation", "Layer"]


class TestCompensate:
    """Tests for the compensation transform."""

    def test_identity_top(self):
        row = _row(x=1.25, y=-3.5, rotation=45.5)
        result = compensate(row, CorrectiveTransform())
        assert result == row

    def test_returns_new_row(self):
        row = _row(rotation=90.0)
        result = compensate(row, CorrectiveTransform(rotation=90.0))
        assert result is not row
        assert row.rotation == 90.0

    def test_rotation_only_top(self):
        result = compensate(_row(rotation=90.0), CorrectiveTransform(rotation=90.0))
        assert result.rotation == 0.0
        assert result.x == 10.0
        assert result.y == 20.0

    def test_offset_rotated_by_final_rotation(self):
        # final rotation 90: local +X offset points along board +Y
        result = compensate(_row(rotation=90.0), CorrectiveTransform(offset_x=1.0))
        assert result.rotation == 90.0
        assert result.x == pytest.approx(10.0)
        assert result.y == pytest.approx(19.0)

    def test_offset_unrotated_top(self):
        result = compensate(_row(), CorrectiveTransform(offset_x=0.5, offset_y=-0.25))
        assert result.x == pytest.approx(9.5)
        assert result.y == pytest.approx(20.25)

    def test_bottom_side_example(self):
        row = _row(rotation=30.0, side=Side.BOTTOM)
        fixup = CorrectiveTransform(rotation=10.0, offset_x=1.0, offset_y=0.0)
        result = compensate(row, fixup)

        assert result.rotation == 140.0
        dx = -math.cos(math.radians(140.0))  # mirrored
        dy = math.sin(math.radians(140.0))
        assert dx == pytest.approx(0.766, abs=1e-3)
        assert dy == pytest.approx(0.643, abs=1e-3)
        assert result.x == pytest.approx(10.0 - dx)
        assert result.y == pytest.approx(20.0 - dy)
        assert result.side is Side.BOTTOM

    def test_bottom_side_mirrors_rotation(self):
        result = compensate(_row(rotation=0.0, side=Side.BOTTOM), CorrectiveTransform())
        assert result.rotation == 180.0
        assert result.x == pytest.approx(10.0)
        assert result.y == pytest.approx(20.0)

    def test_other_fields_unchanged(self):
        row = PlacementRow("Q7", "BSS138", "SOT-23", 1.0, 2.0, 0.0, Side.TOP)
        result = compensate(row, CorrectiveTransform(rotation=180.0, offset_y=0.3))
        assert (result.designator, result.value, result.package) == ("Q7", "BSS138", "SOT-23")


class TestPlacementRow:
    """Tests for PlacementRow serialization."""

    def test_fixed_point(self):
        row = PlacementRow("R1", "10k", "R_0402", 5.5, -3.25, 90.0, Side.BOTTOM)
        assert row.to_row() == ["R1", "10k", "R_0402", "5.500000", "-3.250000", "90.000000", "bottom"]


class TestConvertCplStream:
    """Tests for convert_cpl_stream."""

    def test_pass_through(self, pos_text):
        result, rows = _convert(pos_text)
        assert result.rows == 7
        assert result.compensated == 0
        assert rows[0] == CPL_OUTPUT_HEADER
        assert rows[1] == ["C1", "100nF", "C_0402_1005Metric", "10.000000", "20.000000", "0.000000", "top"]
        assert rows[3] == ["C3", "100nF", "C_0402_1005Metric", "14.000000", "20.000000", "180.000000", "bottom"]

    def test_compensates_listed_designators(self, pos_text):
        fixup_set = {
            "U1": CorrectiveTransform(rotation=90.0),
            "D1": CorrectiveTransform(rotation=10.0, offset_x=1.0),
        }
        result, rows = _convert(pos_text, fixup_set)
        assert result.compensated == 2

        u1 = rows[5]
        assert u1 == ["U1", "STM32F103C8T6", "LQFP-48_7x7mm_P0.5mm", "30.000000", "40.000000", "0.000000", "top"]

        d1 = rows[6]
        assert d1[0] == "D1"
        assert d1[3] == "49.233956"
        assert d1[4] == "59.357212"
        assert d1[5] == "140.000000"
        assert d1[6] == "bottom"

    def test_empty_numeric_fields_are_zero(self):
        _, rows = _convert(HEADER + "TP1,~,TestPoint,,,,top\n")
        assert rows[1][3:6] == ["0.000000", "0.000000", "0.000000"]

    def test_skips_blank_lines(self):
        result, _ = _convert(HEADER + "R1,1k,R_0402,1,2,0,top\n\nR2,1k,R_0402,3,4,0,top\n")
        assert result.rows == 2

    def test_unexpected_header(self):
        with pytest.raises(SchemaError) as exc_info:
            _convert("Designator,Val,Package,Mid X,Mid Y,Rotation,Layer\n")
        assert "cpl: unexpected header" in str(exc_info.value)

    def test_invalid_position(self):
        text = HEADER + "R1,1k,R_0402,1,2,0,top\nR2,1k,R_0402,1.5,abc,90,top\n"
        with pytest.raises(ParseError) as exc_info:
            _convert(text, source_name="pos.csv")
        err = exc_info.value
        assert err.line == 3
        assert "1.5, abc, 90" in str(err)
        assert err.context["file"] == "pos.csv"
        assert err.context["designator"] == "R2"

    def test_invalid_rotation(self):
        with pytest.raises(ParseError, match="invalid position"):
            _convert(HEADER + "R1,1k,R_0402,1,2,9O,top\n")

    @pytest.mark.parametrize("posx", ["1_0", " 5", "5 "])
    def test_loose_number_syntax_rejected(self, posx):
        with pytest.raises(ParseError, match="invalid position"):
            _convert(HEADER + f"R1,1k,R_0402,{posx},2,0,top\n")

    def test_invalid_side(self):
        with pytest.raises(ParseError, match="invalid side: front"):
            _convert(HEADER + "R1,1k,R_0402,1,2,0,front\n")

    def test_wrong_field_count(self):
        with pytest.raises(ParseError, match="wrong number of fields"):
            _convert(HEADER + "R1,1k,R_0402,1,2,0\n")

    def test_no_partial_row_on_error(self):
        dst = io.StringIO()
        with pytest.raises(ParseError):
            convert_cpl_stream(io.StringIO(HEADER + "R1,1k,R_0402,x,2,0,top\n"), dst, {})
        assert dst.getvalue().splitlines() == [",".join(CPL_OUTPUT_HEADER)]


class TestConvertCpl:
    """Tests for the file-based convert_cpl."""

    def test_writes_file(self, tmp_path, raw_pos):
        dst = tmp_path / "out-cpl.csv"
        result = convert_cpl(dst, raw_pos, {"R1": CorrectiveTransform(offset_x=0.5)})
        assert result.rows == 7
        lines = dst.read_text().splitlines()
        assert lines[0] == "Designator,Val,Package,Mid X,Mid Y,Rotation,Layer"
        assert lines[4] == "R1,10k,R_0402_1005Metric,5.000000,-3.250000,0.000000,top"
