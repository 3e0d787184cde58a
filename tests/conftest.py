"""Pytest fixtures for kicad-fab tests."""

import pytest

from kicad_fab.fixups import CorrectiveTransform, FixupTable

# Grouped BOM as written by kicad-cli sch export bom
RAW_BOM = """Reference,Value,Footprint,PartNumber
C1-C3,100nF,Capacitor_SMD:C_0402_1005Metric,C1525
R1,10k,Resistor_SMD:R_0402_1005Metric,C25744
"U1",STM32F103C8T6,Package_QFP:LQFP-48_7x7mm_P0.5mm,C8734
D1-D2,-- mixed values --,LED_SMD:LED_0603_1608Metric,C2286
"""

# Placement file as written by kicad-cli pcb export pos --format csv
RAW_POS = """Ref,Val,Package,PosX,PosY,Rot,Side
C1,100nF,C_0402_1005Metric,10.000000,20.000000,0.000000,top
C2,100nF,C_0402_1005Metric,12.000000,20.000000,90.000000,top
C3,100nF,C_0402_1005Metric,14.000000,20.000000,180.000000,bottom
R1,10k,R_0402_1005Metric,5.500000,-3.250000,0.000000,top
U1,STM32F103C8T6,LQFP-48_7x7mm_P0.5mm,30.000000,40.000000,90.000000,top
D1,LED,LED_0603_1608Metric,50.000000,60.000000,30.000000,bottom
D2,LED,LED_0603_1608Metric,52.000000,60.000000,0.000000,bottom
"""


@pytest.fixture
def fixup_table() -> FixupTable:
    """Table with a rotation-only fixup and a rotation-plus-offset fixup."""
    return FixupTable(
        {
            "C8734": CorrectiveTransform(rotation=90.0),
            "C2286": CorrectiveTransform(rotation=10.0, offset_x=1.0, offset_y=0.0),
        },
        source="test",
    )


@pytest.fixture
def raw_bom(tmp_path):
    path = tmp_path / "bom.csv"
    path.write_text(RAW_BOM)
    return path


@pytest.fixture
def raw_pos(tmp_path):
    path = tmp_path / "pos.csv"
    path.write_text(RAW_POS)
    return path


@pytest.fixture
def bom_text() -> str:
    return RAW_BOM


@pytest.fixture
def pos_text() -> str:
    return RAW_POS
