"""Tests for the parley CLI."""

import json
from pathlib import Path

import pytest
import yaml
from click.testing import CliRunner

from parley.cli import cli
from parley.cli.utils import parse_var_string, parse_vars

pytestmark = pytest.mark.unit


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def base_args(prompt_dir: Path) -> list[str]:
    return ["--templates-dir", str(prompt_dir)]


class TestParseVars:
    """Tests for key=value parsing."""

    def test_parse_var_string(self) -> None:
        assert parse_var_string("name=Ana") == ("name", "Ana")
        assert parse_var_string(" expr = a=b ") == ("expr", "a=b")

    def test_parse_var_string_invalid(self) -> None:
        with pytest.raises(ValueError, match="expected key=value"):
            parse_var_string("novalue")
        with pytest.raises(ValueError, match="Empty variable name"):
            parse_var_string("=x")

    def test_parse_vars_last_wins(self) -> None:
        assert parse_vars(["a=1", "b=2", "a=3"]) == {"a": "3", "b": "2"}


class TestListCommand:
    """Tests for `parley list`."""

    def test_lists_templates(self, runner: CliRunner, base_args: list[str]) -> None:
        result = runner.invoke(cli, [*base_args, "list"])

        assert result.exit_code == 0, result.output
        assert "review" in result.output
        assert "chat/support (conversation)" in result.output

    def test_json_output(self, runner: CliRunner, base_args: list[str]) -> None:
        result = runner.invoke(cli, [*base_args, "list", "--json"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["conversations"] == ["chat/support"]
        assert "shared/header" in data["templates"]

    def test_missing_directory(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["--templates-dir", str(tmp_path / "nope"), "list"])

        assert result.exit_code != 0
        assert "Template directory not found" in result.output


class TestRenderCommand:
    """Tests for `parley render`."""

    def test_render(self, runner: CliRunner, base_args: list[str]) -> None:
        result = runner.invoke(cli, [*base_args, "render", "review", "--var", "diff=+ x"])

        assert result.exit_code == 0, result.output
        assert result.output == "# Reviewer for developers\nReview this python change.\n+ x\n"

    def test_render_with_locale(self, runner: CliRunner, base_args: list[str]) -> None:
        result = runner.invoke(
            cli, [*base_args, "render", "review", "-v", "diff=x", "-v", "language=Go", "--locale", "es"]
        )

        assert result.exit_code == 0, result.output
        assert "Revisa este cambio de Go." in result.output

    def test_vars_file_with_overrides(self, runner: CliRunner, base_args: list[str], tmp_path: Path) -> None:
        vars_file = tmp_path / "vars.yaml"
        vars_file.write_text(yaml.safe_dump({"diff": "from file", "language": "Rust"}))

        result = runner.invoke(
            cli, [*base_args, "render", "review", "--vars-file", str(vars_file), "--var", "diff=from cli"]
        )

        assert result.exit_code == 0, result.output
        assert "Review this Rust change." in result.output
        assert "from cli" in result.output

    def test_missing_required_variable(self, runner: CliRunner, base_args: list[str]) -> None:
        result = runner.invoke(cli, [*base_args, "render", "review"])

        assert result.exit_code == 1
        assert "Required template variables missing" in result.output
        assert "diff" in result.output

    def test_unknown_template(self, runner: CliRunner, base_args: list[str]) -> None:
        result = runner.invoke(cli, [*base_args, "render", "nope"])

        assert result.exit_code == 1
        assert "Template not found: nope" in result.output

    def test_bad_var_option(self, runner: CliRunner, base_args: list[str]) -> None:
        result = runner.invoke(cli, [*base_args, "render", "review", "--var", "oops"])

        assert result.exit_code == 2
        assert "expected key=value" in result.output


class TestConverseCommand:
    """Tests for `parley converse`."""

    ARGS = ["converse", "chat/support", "--var", "product=Acme", "--var", "question=Hi?"]

    def test_text_output(self, runner: CliRunner, base_args: list[str]) -> None:
        result = runner.invoke(cli, [*base_args, *self.ARGS])

        assert result.exit_code == 0, result.output
        assert "[system]\nYou are a support agent for Acme." in result.output
        assert "[user]\nHi?" in result.output

    def test_json_output(self, runner: CliRunner, base_args: list[str]) -> None:
        result = runner.invoke(cli, [*base_args, *self.ARGS, "--json"])

        assert result.exit_code == 0, result.output
        messages = json.loads(result.output)
        assert [m["role"] for m in messages] == ["system", "user", "assistant"]

    def test_not_a_conversation(self, runner: CliRunner, base_args: list[str]) -> None:
        result = runner.invoke(cli, [*base_args, "converse", "review", "--var", "diff=x"])

        assert result.exit_code == 1
        assert "is not a conversation template" in result.output


class TestInspectCommand:
    """Tests for `parley inspect`."""

    def test_inspect(self, runner: CliRunner, base_args: list[str]) -> None:
        result = runner.invoke(cli, [*base_args, "inspect", "review"])

        assert result.exit_code == 0, result.output
        assert "Required variables: diff" in result.output
        assert "Includes: shared/header.md" in result.output
        assert "Catalog key: review" in result.output

    def test_inspect_json(self, runner: CliRunner, base_args: list[str]) -> None:
        result = runner.invoke(cli, [*base_args, "inspect", "chat/support", "--json"])

        assert result.exit_code == 0, result.output
        info = json.loads(result.output)
        assert info["conversation"] is True
        assert info["required_variables"] == ["question"]


class TestConfigOption:
    """Tests for --config."""

    def test_config_file_sets_template_dir(self, runner: CliRunner, prompt_dir: Path, tmp_path: Path) -> None:
        config = tmp_path / "parley.yaml"
        config.write_text(yaml.safe_dump({"templates_dir": str(prompt_dir)}))

        result = runner.invoke(cli, ["--config", str(config), "list", "--conversations"])

        assert result.exit_code == 0, result.output
        assert result.output.strip() == "chat/support"

    def test_invalid_config(self, runner: CliRunner, tmp_path: Path) -> None:
        config = tmp_path / "parley.yaml"
        config.write_text(yaml.safe_dump({"default_locale": "../x"}))

        result = runner.invoke(cli, ["--config", str(config), "list"])

        assert result.exit_code == 1
        assert "Configuration validation failed" in result.output
