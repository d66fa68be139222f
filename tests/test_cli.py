from pathlib import Path

from click.testing import CliRunner

from glam.cli.main import cli


def write_template(tmp_path: Path, source: str) -> str:
    template = tmp_path / "page.html"
    template.write_text(source, encoding="utf-8")
    return str(template)


def test_lower_plain(tmp_path: Path) -> None:
    template = write_template(tmp_path, '<Yell Name="Fox"/>')
    result = CliRunner().invoke(cli, ["lower", template, "-c", "Yell", "--plain"])
    assert result.exit_code == 0, result.output
    assert result.output.strip() == '{{ glam__render("Yell", "", {"Name": "Fox"}, none) }}'


def test_lower_without_components_is_unchanged(tmp_path: Path) -> None:
    template = write_template(tmp_path, "<p>{{ x }}</p>")
    result = CliRunner().invoke(cli, ["lower", template, "--plain"])
    assert result.exit_code == 0, result.output
    assert result.output.strip() == "<p>{{ x }}</p>"


def test_parse_lists_components_and_deferred_names(tmp_path: Path) -> None:
    template = write_template(tmp_path, "<Card>hi</Card><Later/>")
    result = CliRunner().invoke(cli, ["parse", template, "-c", "Card"])
    assert result.exit_code == 0, result.output
    assert "components: Card" in result.output
    assert "deferred: Later" in result.output


def test_errors_exit_non_zero(tmp_path: Path) -> None:
    template = write_template(tmp_path, "<Card>")
    result = CliRunner().invoke(cli, ["parse", template, "--name", "Card"])
    assert result.exit_code == 1
    assert "unclosed component tag <Card>" in result.output


def test_parse_plain_dump(tmp_path: Path) -> None:
    template = write_template(tmp_path, '<Card title="t">hi</Card>')
    result = CliRunner().invoke(cli, ["parse", template, "-c", "Card", "--plain"])
    assert result.exit_code == 0, result.output
    assert result.output.splitlines() == ["Component(Card title='t') {", "  Raw('hi')", "}"]


def test_help_lists_commands() -> None:
    result = CliRunner().invoke(cli, ["--help"])
    assert result.exit_code == 0, result.output
    assert "parse" in result.output
    assert "lower" in result.output
