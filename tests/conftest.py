"""Shared fixtures: a small, fully valid two-column frame."""

import pytest

from stb_validator.models import (
    ElementKind,
    StbAxis,
    StbAxisGroup,
    StbDocument,
    StbMember,
    StbNode,
    StbSection,
    StbStory,
)

SAMPLE_STB = """<?xml version="1.0" encoding="UTF-8"?>
<ST_BRIDGE xmlns="https://www.building-smart.or.jp/dl" version="2.0.2">
  <StbCommon/>
  <StbModel>
    <StbNodes>
      <StbNode id="N1" X="0" Y="0" Z="0"/>
      <StbNode id="N2" X="0" Y="0" Z="3000"/>
      <StbNode id="N3" X="6000" Y="0" Z="3000"/>
      <StbNode id="N4" X="6000" Y="0" Z="0"/>
    </StbNodes>
    <StbAxes>
      <StbParallelAxes group_name="X">
        <StbParallelAxis id="AX1" name="X1" distance="0"/>
        <StbParallelAxis id="AX2" name="X2" distance="6000"/>
      </StbParallelAxes>
      <StbParallelAxes group_name="Y">
        <StbParallelAxis id="AY1" name="Y1" distance="0"/>
      </StbParallelAxes>
    </StbAxes>
    <StbStories>
      <StbStory id="S1" name="1F" height="0" kind="GENERAL"/>
      <StbStory id="S2" name="2F" height="3000" kind="GENERAL"/>
    </StbStories>
    <StbMembers>
      <StbColumns>
        <StbColumn id="C1" name="C1" id_node_bottom="N1" id_node_top="N2" id_section="SC1" rotate="0"/>
        <StbColumn id="C2" name="C1" id_node_bottom="N4" id_node_top="N3" id_section="SC1" rotate="0"/>
      </StbColumns>
      <StbGirders>
        <StbGirder id="G1" name="G1" id_node_start="N2" id_node_end="N3" id_section="SG1"/>
      </StbGirders>
    </StbMembers>
    <StbSections>
      <StbSecColumn_RC id="SC1" name="C1" strength_concrete="Fc24">
        <StbSecFigureColumn_RC>
          <StbSecColumn_RC_Rect width_X="600" width_Y="600"/>
        </StbSecFigureColumn_RC>
      </StbSecColumn_RC>
      <StbSecBeam_S id="SG1" name="G1">
        <StbSecSteelFigureBeam_S>
          <StbSecSteelBeam_S_Straight shape="H-600x200x11x17"/>
        </StbSecSteelFigureBeam_S>
      </StbSecBeam_S>
      <StbSecSteel>
        <StbSecRoll-H name="H-600x200x11x17" A="600" B="200" t1="11" t2="17" r="22"/>
      </StbSecSteel>
    </StbSections>
  </StbModel>
</ST_BRIDGE>
"""


def build_frame() -> StbDocument:
    """Two 3 m RC columns joined by a 6 m steel girder. Validates clean."""
    return StbDocument(
        nodes=[
            StbNode(id="N1", X="0", Y="0", Z="0"),
            StbNode(id="N2", X="0", Y="0", Z="3000"),
            StbNode(id="N3", X="6000", Y="0", Z="3000"),
            StbNode(id="N4", X="6000", Y="0", Z="0"),
        ],
        stories=[
            StbStory(id="S1", name="1F", height="0"),
            StbStory(id="S2", name="2F", height="3000"),
        ],
        axis_groups=[
            StbAxisGroup(
                group_name="X",
                axes=[
                    StbAxis(id="AX1", name="X1", distance="0"),
                    StbAxis(id="AX2", name="X2", distance="6000"),
                ],
            ),
            StbAxisGroup(group_name="Y", axes=[StbAxis(id="AY1", name="Y1", distance="0")]),
        ],
        members=[
            StbMember(kind=ElementKind.COLUMN, id="C1", id_node_bottom="N1", id_node_top="N2", id_section="SC1"),
            StbMember(kind=ElementKind.COLUMN, id="C2", id_node_bottom="N4", id_node_top="N3", id_section="SC1"),
            StbMember(kind=ElementKind.GIRDER, id="G1", id_node_start="N2", id_node_end="N3", id_section="SG1"),
        ],
        sections=[
            StbSection(
                id="SC1",
                tag="StbSecColumn_RC",
                kind=ElementKind.COLUMN,
                section_type="RECTANGLE",
                dimensions={"width_X": "600", "width_Y": "600"},
                figure="StbSecColumn_RC_Rect",
            ),
            StbSection(
                id="SG1",
                tag="StbSecBeam_S",
                kind=ElementKind.BEAM,
                section_type="H",
                dimensions={"A": "600", "B": "200", "t1": "11", "t2": "17"},
                figure="StbSecSteelBeam_S_Straight",
                shape="H-600x200x11x17",
                shape_tag="StbSecRoll-H",
            ),
        ],
    )


@pytest.fixture
def frame() -> StbDocument:
    return build_frame()


@pytest.fixture
def stb_file(tmp_path):
    path = tmp_path / "frame.stb"
    path.write_text(SAMPLE_STB, encoding="utf-8")
    return path
