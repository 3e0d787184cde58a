"""Tests for the kicad-cli wrapper (no KiCad installation required)."""

import subprocess
import zipfile
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from kicad_fab.exceptions import ExportError
from kicad_fab.export.kicad_cli import KiCadExporter, find_kicad_cli, git_describe, zip_dir


@pytest.fixture
def exporter(tmp_path):
    return KiCadExporter("mainboard", board_dir=tmp_path, kicad_cli="/opt/kicad/kicad-cli")


def _completed(stdout=""):
    return MagicMock(stdout=stdout, stderr="", returncode=0)


class TestFindKicadCli:
    """Tests for find_kicad_cli."""

    def test_returns_path_or_none(self):
        result = find_kicad_cli()
        assert result is None or isinstance(result, Path)

    def test_uses_path(self):
        with patch("kicad_fab.export.kicad_cli.shutil.which", return_value="/usr/bin/kicad-cli"):
            assert find_kicad_cli() == Path("/usr/bin/kicad-cli")

    def test_not_found(self):
        with patch("kicad_fab.export.kicad_cli.shutil.which", return_value=None), \
                patch.object(Path, "exists", return_value=False):
            assert find_kicad_cli() is None

    def test_exporter_requires_cli(self):
        with patch("kicad_fab.export.kicad_cli.find_kicad_cli", return_value=None):
            with pytest.raises(ExportError, match="kicad-cli not found"):
                KiCadExporter("mainboard")


class TestKiCadExporter:
    """Tests for the command lines passed to kicad-cli."""

    def test_board_paths(self, exporter, tmp_path):
        assert exporter.pcb_path == tmp_path / "mainboard.kicad_pcb"
        assert exporter.schematic_path == tmp_path / "mainboard.kicad_sch"

    def test_export_gerbers(self, exporter, tmp_path):
        with patch("kicad_fab.export.kicad_cli.subprocess.run", return_value=_completed()) as run:
            exporter.export_gerbers(tmp_path / "g", version="v2")
        cmd = run.call_args.args[0]
        assert cmd[:4] == ["/opt/kicad/kicad-cli", "pcb", "export", "gerbers"]
        assert ["-D", "VERSION=v2"] == cmd[4:6]
        assert "--subtract-soldermask" in cmd
        assert cmd[-1] == str(tmp_path / "mainboard.kicad_pcb")

    def test_export_drill_trailing_slash(self, exporter, tmp_path):
        with patch("kicad_fab.export.kicad_cli.subprocess.run", return_value=_completed()) as run:
            exporter.export_drill(tmp_path / "g")
        cmd = run.call_args.args[0]
        assert cmd[cmd.index("-o") + 1] == str(tmp_path / "g") + "/"
        assert cmd[cmd.index("--drill-origin") + 1] == "absolute"
        assert cmd[cmd.index("-u") + 1] == "mm"

    def test_export_bom(self, exporter, tmp_path):
        with patch("kicad_fab.export.kicad_cli.subprocess.run", return_value=_completed()) as run:
            exporter.export_bom(tmp_path / "bom.csv", part_number_field="LCSC")
        cmd = run.call_args.args[0]
        assert cmd[1:4] == ["sch", "export", "bom"]
        assert cmd[cmd.index("--group-by") + 1] == "LCSC"
        assert cmd[cmd.index("--fields") + 1] == "Reference,Value,Footprint,LCSC"
        assert "--exclude-dnp" in cmd
        assert cmd[-1] == str(tmp_path / "mainboard.kicad_sch")

    def test_export_pos(self, exporter, tmp_path):
        with patch("kicad_fab.export.kicad_cli.subprocess.run", return_value=_completed()) as run:
            exporter.export_pos(tmp_path / "pos.csv")
        cmd = run.call_args.args[0]
        assert cmd[1:4] == ["pcb", "export", "pos"]
        assert cmd[cmd.index("--format") + 1] == "csv"
        assert cmd[cmd.index("--units") + 1] == "mm"

    def test_failure_raises_export_error(self, exporter, tmp_path):
        error = subprocess.CalledProcessError(1, ["kicad-cli"], stderr="Failed to load board\n")
        with patch("kicad_fab.export.kicad_cli.subprocess.run", side_effect=error):
            with pytest.raises(ExportError) as exc_info:
                exporter.export_pos(tmp_path / "pos.csv")
        assert "Placement export failed" in str(exc_info.value)
        assert exc_info.value.context["stderr"] == "Failed to load board"


class TestGitDescribe:
    """Tests for git_describe."""

    def test_strips_output(self):
        with patch("kicad_fab.export.kicad_cli.subprocess.run", return_value=_completed("v1.2-dirty\n")) as run:
            assert git_describe() == "v1.2-dirty"
        assert run.call_args.args[0][:2] == ["git", "describe"]

    def test_git_missing(self):
        with patch("kicad_fab.export.kicad_cli.subprocess.run", side_effect=FileNotFoundError("git")):
            with pytest.raises(ExportError, match="git describe failed"):
                git_describe()


class TestZipDir:
    """Tests for zip_dir."""

    def test_zips_top_level_files(self, tmp_path):
        src = tmp_path / "gerbers"
        src.mkdir()
        (src / "b.gbr").write_text("B")
        (src / "a.drl").write_text("A")
        (src / "nested").mkdir()
        (src / "nested" / "skip.txt").write_text("x")

        zip_path = zip_dir(tmp_path / "board.zip", src)
        with zipfile.ZipFile(zip_path) as zf:
            assert zf.namelist() == ["a.drl", "b.gbr"]
            assert zf.read("b.gbr") == b"B"

    def test_replaces_existing(self, tmp_path):
        src = tmp_path / "gerbers"
        src.mkdir()
        (src / "a.gbr").write_text("A")
        zip_path = tmp_path / "board.zip"
        zip_path.write_text("stale")

        zip_dir(zip_path, src)
        assert zipfile.is_zipfile(zip_path)
