"""Tests for the offline CLI commands."""

from click.testing import CliRunner

from anchor import cli


class TestCheck:
    """Tests for `anchor check`."""

    def test_weak_bullet_plan(self):
        result = CliRunner().invoke(cli, ["check", "Helped with backend development", "--skill", "Python"])
        assert result.exit_code == 0
        assert "can improve" in result.output
        assert "verb_upgrade" in result.output

    def test_empty_text_fails(self):
        result = CliRunner().invoke(cli, ["check", "   "])
        assert result.exit_code == 1


class TestFormat:
    """Tests for `anchor format`."""

    def test_formats_and_unifies_tense(self, tmp_path):
        bullets_file = tmp_path / "bullets.txt"
        bullets_file.write_text("• Led team.\nBuilt API\nmanages budget\n")

        result = CliRunner().invoke(cli, ["format", str(bullets_file)])
        assert result.exit_code == 0
        lines = result.output.splitlines()
        assert lines[:3] == ["Led team", "Built API", "Managed budget"]
        assert "2 bullet(s) changed" in result.output
