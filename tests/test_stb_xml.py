"""Tests for ST-Bridge XML reading and writing."""

import xml.etree.ElementTree as ET

import pytest

from stb_validator.io.stb_xml import (
    STB_NAMESPACE,
    StbLoadError,
    load_document,
    load_stb_document,
    parse_stb_xml,
    to_stb_xml,
    write_stb_xml,
)
from stb_validator.models import ElementKind, StbDocument, StbMember, StbNode
from stb_validator.repair.engine import auto_repair_document
from stb_validator.validators.engine import validate_stb_document

NS = {"stb": STB_NAMESPACE}

# Carries content the model does not cover, plus a dangling girder section and a node without Z
RICH_STB = """<?xml version="1.0" encoding="UTF-8"?>
<ST_BRIDGE xmlns="https://www.building-smart.or.jp/dl" version="2.0.2">
  <StbCommon>
    <StbApplyConditionsList/>
  </StbCommon>
  <StbModel>
    <StbNodes>
      <StbNode id="N1" X="0" Y="0" Z="0"/>
      <StbNode id="N2" X="0" Y="0" Z="3000"/>
      <StbNode id="N3" X="6000" Y="0" Z="3000"/>
      <StbNode id="N4" X="6000" Y="0"/>
    </StbNodes>
    <StbStories>
      <StbStory id="S1" name="1F" height="0"/>
      <StbStory id="S2" name="2F" height="3000" kind="GENERAL"/>
    </StbStories>
    <StbMembers>
      <StbColumns>
        <StbColumn id="C1" name="C1" id_node_bottom="N1" id_node_top="N2" id_section="SC1"/>
      </StbColumns>
      <StbGirders>
        <StbGirder id="G1" name="G1" id_node_start="N2" id_node_end="N3" id_section="SX"/>
      </StbGirders>
      <StbSlabs>
        <StbSlab id="SL1" name="S1" id_section="SS1" kind_slab="NORMAL">
          <StbNodeIdOrder>N1 N2 N3</StbNodeIdOrder>
        </StbSlab>
      </StbSlabs>
    </StbMembers>
    <StbSections>
      <StbSecColumn_RC id="SC1" name="C1" strength_concrete="Fc24">
        <StbSecFigureColumn_RC>
          <StbSecColumn_RC_Rect width_X="600" width_Y="600"/>
        </StbSecFigureColumn_RC>
        <StbSecBarArrangementColumn_RC>
          <StbSecBarColumn_RC_RectSame D_main="D25" N_main_X_1st="4" N_main_Y_1st="4"/>
        </StbSecBarArrangementColumn_RC>
      </StbSecColumn_RC>
      <StbSecSlab_RC id="SS1" name="S1">
        <StbSecFigureSlab_RC>
          <StbSecSlab_RC_Straight depth="200"/>
        </StbSecFigureSlab_RC>
      </StbSecSlab_RC>
    </StbSections>
  </StbModel>
</ST_BRIDGE>
"""


class TestParse:
    @pytest.fixture
    def parsed(self, stb_file):
        return parse_stb_xml(stb_file.read_text(encoding="utf-8"))

    def test_root(self, parsed):
        assert parsed.root == "ST_BRIDGE"
        assert parsed.version == "2.0.2"
        assert parsed.groups == ["StbCommon", "StbModel"]
        assert parsed.extra["xmlns"] == STB_NAMESPACE

    def test_nodes(self, parsed):
        assert [n.id for n in parsed.nodes] == ["N1", "N2", "N3", "N4"]
        assert parsed.find_node("N3").x == "6000"

    def test_stories_and_axes(self, parsed):
        assert [s.name for s in parsed.stories] == ["1F", "2F"]
        assert [g.group_name for g in parsed.axis_groups] == ["X", "Y"]
        assert [a.id for a in parsed.axis_groups[0].axes] == ["AX1", "AX2"]

    def test_members(self, parsed):
        assert [(m.kind, m.id) for m in parsed.members] == [
            (ElementKind.COLUMN, "C1"), (ElementKind.COLUMN, "C2"), (ElementKind.GIRDER, "G1"),
        ]
        assert parsed.members[0].extra == {"rotate": "0"}

    def test_rc_section(self, parsed):
        section = parsed.find_section("StbSecColumn_RC", "SC1")
        assert section.kind == ElementKind.COLUMN
        assert section.section_type == "RECTANGLE"
        assert section.dimensions == {"width_X": "600", "width_Y": "600"}
        assert section.extra == {"strength_concrete": "Fc24"}

    def test_steel_section_resolves_shape(self, parsed):
        section = parsed.find_section("StbSecBeam_S", "SG1")
        assert section.kind == ElementKind.BEAM
        assert section.section_type == "H"
        assert section.shape_tag == "StbSecRoll-H"
        assert section.dimensions["A"] == "600"

    def test_parsed_sample_is_valid(self, parsed):
        assert validate_stb_document(parsed).issues == []

    def test_no_namespace(self):
        document = parse_stb_xml('<ST_BRIDGE version="2.0.2"><StbModel><StbNodes><StbNode id="N1" X="0" Y="0" Z="0"/></StbNodes></StbModel></ST_BRIDGE>')
        assert document.groups == ["StbModel"]
        assert "xmlns" not in document.extra
        assert len(document.nodes) == 1

    def test_circle_figure(self):
        document = parse_stb_xml(
            "<ST_BRIDGE><StbModel><StbSections>"
            '<StbSecColumn_RC id="SC2"><StbSecFigureColumn_RC><StbSecColumn_RC_Circle D="800"/>'
            "</StbSecFigureColumn_RC></StbSecColumn_RC>"
            "</StbSections></StbModel></ST_BRIDGE>"
        )
        section = document.sections[0]
        assert section.section_type == "CIRCLE"
        assert section.dimensions == {"D": "800"}

    def test_foundation_sections(self):
        document = parse_stb_xml(
            "<ST_BRIDGE><StbModel><StbSections>"
            '<StbSecFoundation_RC id="F1"/><StbSecFoundationColumn_RC id="FC1"/>'
            "</StbSections></StbModel></ST_BRIDGE>"
        )
        assert [s.kind for s in document.sections] == [ElementKind.FOOTING, ElementKind.FOUNDATION_COLUMN]

    def test_bad_values_are_kept_raw(self):
        document = parse_stb_xml('<ST_BRIDGE><StbModel><StbNodes><StbNode id="N1" X="abc" Y="0"/></StbNodes></StbModel></ST_BRIDGE>')
        node = document.nodes[0]
        assert (node.x, node.y, node.z) == ("abc", "0", None)

    def test_malformed(self):
        with pytest.raises(StbLoadError, match="Not well-formed"):
            parse_stb_xml("<ST_BRIDGE><StbModel>")

    def test_shift_jis(self):
        text = '<?xml version="1.0" encoding="Shift_JIS"?><ST_BRIDGE><StbModel><StbStories><StbStory id="S1" name="１階" height="0"/></StbStories></StbModel></ST_BRIDGE>'
        document = parse_stb_xml(text.encode("shift_jis"))
        assert document.stories[0].name == "１階"


class TestLoad:
    def test_load_file(self, stb_file):
        assert len(load_stb_document(stb_file).members) == 3

    def test_missing_file(self, tmp_path):
        with pytest.raises(StbLoadError, match="Cannot read"):
            load_stb_document(tmp_path / "nope.stb")

    def test_json_snapshot(self, frame, tmp_path):
        path = frame.save(tmp_path / "frame.json")
        assert load_document(path) == frame

    def test_bad_json_snapshot(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(StbLoadError):
            load_document(path)


class TestWrite:
    def test_round_trip(self, stb_file, tmp_path):
        original = load_stb_document(stb_file)
        path = write_stb_xml(original, tmp_path / "out" / "frame.stb")
        reloaded = load_stb_document(path)
        assert reloaded.nodes == original.nodes
        assert reloaded.members == original.members
        assert reloaded.stories == original.stories
        assert reloaded.axis_groups == original.axis_groups
        assert reloaded.sections == original.sections

    def test_written_in_namespace(self, frame):
        root = ET.fromstring(to_stb_xml(frame))
        assert root.tag == f"{{{STB_NAMESPACE}}}ST_BRIDGE"
        assert root.find(f"{{{STB_NAMESPACE}}}StbModel/{{{STB_NAMESPACE}}}StbMembers/{{{STB_NAMESPACE}}}StbColumns") is not None

    def test_declaration(self, frame, tmp_path):
        path = write_stb_xml(frame, tmp_path / "frame.stb")
        assert path.read_bytes().startswith(b"<?xml version='1.0' encoding='utf-8'?>")

    def test_model_group_added_when_missing(self, frame):
        frame.groups = ["StbCommon"]
        reparsed = parse_stb_xml(to_stb_xml(frame))
        assert reparsed.groups == ["StbCommon", "StbModel"]
        assert len(reparsed.nodes) == 4

    def test_empty_document(self):
        reparsed = parse_stb_xml(to_stb_xml(StbDocument()))
        assert reparsed.groups == ["StbCommon", "StbModel"]
        assert reparsed.nodes == []

    def test_repaired_file_keeps_unmodeled_content(self):
        document = parse_stb_xml(RICH_STB)
        result = auto_repair_document(document, validate_stb_document(document))
        assert result.report.removed_elements == ["G1"]

        root = ET.fromstring(to_stb_xml(result.document))
        assert root.find("stb:StbCommon/stb:StbApplyConditionsList", NS) is not None
        slab = root.find("stb:StbModel/stb:StbMembers/stb:StbSlabs/stb:StbSlab", NS)
        assert slab.get("id") == "SL1"
        assert slab.find("stb:StbNodeIdOrder", NS).text == "N1 N2 N3"
        assert root.find(".//stb:StbSecSlab_RC", NS) is not None
        assert root.find(".//stb:StbSecBarColumn_RC_RectSame", NS).get("D_main") == "D25"

        assert root.find(".//stb:StbGirder", NS) is None
        assert root.find(".//stb:StbNode[@id='N4']", NS).get("Z") == "0"
        assert root.find(".//stb:StbStory[@id='S1']", NS).get("kind") is None

    def test_repaired_file_validates(self, tmp_path):
        document = parse_stb_xml(RICH_STB)
        result = auto_repair_document(document, validate_stb_document(document))
        path = write_stb_xml(result.document, tmp_path / "rich_repaired.stb")
        assert validate_stb_document(load_stb_document(path)).valid

    def test_objects_added_after_parsing_are_written(self):
        document = parse_stb_xml(RICH_STB)
        document.nodes.append(StbNode(id="N5", X="1", Y="2", Z="3"))
        document.members.append(
            StbMember(kind=ElementKind.BEAM, id="B1", id_node_start="N2", id_node_end="N3", id_section="SC1")
        )
        reparsed = parse_stb_xml(to_stb_xml(document))
        assert reparsed.find_node("N5").z == "3"
        assert reparsed.find_member("StbBeam", "B1") is not None
        assert reparsed.find_member("StbColumn", "C1") is not None

    def test_removed_axis_leaves_its_siblings(self, stb_file):
        document = load_stb_document(stb_file)
        del document.axis_groups[0].axes[0]
        reparsed = parse_stb_xml(to_stb_xml(document))
        assert [a.id for a in reparsed.axis_groups[0].axes] == ["AX2"]
        assert [a.id for a in reparsed.axis_groups[1].axes] == ["AY1"]

    def test_edited_steel_dimensions_land_on_the_shape(self, stb_file):
        document = load_stb_document(stb_file)
        document.find_section("StbSecBeam_S", "SG1").dimensions["A"] = "500"
        root = ET.fromstring(to_stb_xml(document))
        shape = root.find(".//stb:StbSecSteel/stb:StbSecRoll-H", NS)
        assert (shape.get("name"), shape.get("A"), shape.get("r")) == ("H-600x200x11x17", "500", "22")

    def test_json_snapshot_writes_from_the_model(self, stb_file, tmp_path):
        document = load_stb_document(stb_file)
        assert document.source is not None
        loaded = StbDocument.load(document.save(tmp_path / "frame.json"))
        assert loaded.source is None
        assert len(parse_stb_xml(to_stb_xml(loaded)).members) == 3
