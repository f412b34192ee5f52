from click.utils import strip_ansi
from typer.testing import CliRunner

import pixi_chooser.__main__ as entrypoint
from pixi_chooser import __version__
from pixi_chooser.models import PackageSelection
from pixi_chooser.settings import ChooserSettings


def _install_fake_app(
    monkeypatch, selection: PackageSelection | None
) -> dict[str, object]:
    captured: dict[str, object] = {}

    class _FakeApp:
        def __init__(
            self,
            *,
            settings: ChooserSettings | None = None,
            search_term: str | None = None,
        ) -> None:
            captured["settings"] = settings
            captured["search_term"] = search_term

        def run(self) -> PackageSelection | None:
            captured["run_called"] = True
            return selection

    monkeypatch.setattr(entrypoint, "PackageChooserApp", _FakeApp)
    monkeypatch.setattr(
        entrypoint,
        "_configure_logging",
        lambda level_name: captured.__setitem__("log_level", level_name),
    )
    return captured


def test_help_includes_expected_options() -> None:
    runner = CliRunner()

    result = runner.invoke(entrypoint.cli, ["--help"])
    output = strip_ansi(result.output)

    assert result.exit_code == 0
    assert "--channel" in output
    assert "--platform" in output
    assert "--search" in output
    assert "--no-auto-load" in output
    assert "--debounce" in output
    assert "--version" in output


def test_version_flag_prints_version_and_exits() -> None:
    runner = CliRunner()

    result = runner.invoke(entrypoint.cli, ["--version"])

    assert result.exit_code == 0
    assert result.output.strip() == f"pixi-chooser {__version__}"


def test_cli_builds_settings_and_prints_selection(monkeypatch) -> None:
    runner = CliRunner()
    captured = _install_fake_app(
        monkeypatch,
        PackageSelection(
            channel="prefix.dev/conda-forge", name="numpy", version="2.1.3"
        ),
    )

    result = runner.invoke(
        entrypoint.cli,
        [
            "-c",
            "prefix.dev/conda-forge",
            "-p",
            "linux-64",
            "-p",
            "noarch",
            "--search",
            "num",
            "--no-auto-load",
            "--page-size",
            "25",
            "--debounce",
            "0.25",
            "--sort-new-column",
            "preserve",
            "--log-level",
            "debug",
        ],
    )

    assert result.exit_code == 0
    assert result.output.strip() == "prefix.dev/conda-forge::numpy==2.1.3"
    settings = captured["settings"]
    assert isinstance(settings, ChooserSettings)
    assert settings.default_channel == "prefix.dev/conda-forge"
    assert {str(platform) for platform in settings.default_platforms} == {
        "linux-64",
        "noarch",
    }
    assert settings.auto_load_packages is False
    assert settings.page_size == 25
    assert settings.search_debounce_seconds == 0.25
    assert settings.new_sort_column_direction == "preserve"
    assert captured["search_term"] == "num"
    assert captured["log_level"] == "debug"
    assert captured["run_called"] is True


def test_cli_exits_with_error_when_nothing_was_chosen(monkeypatch) -> None:
    runner = CliRunner()
    captured = _install_fake_app(monkeypatch, None)

    result = runner.invoke(entrypoint.cli, [])

    assert result.exit_code == 1
    assert result.output == ""
    assert captured["search_term"] is None


def test_cli_exits_for_invalid_platform(monkeypatch) -> None:
    runner = CliRunner()
    captured = _install_fake_app(monkeypatch, None)

    result = runner.invoke(entrypoint.cli, ["-p", "linux-64", "-p", "bad-platform"])

    assert result.exit_code == 1
    assert "bad-platform" in result.output
    assert "not a known platform" in result.output
    assert captured == {}


def test_cli_rejects_unknown_sort_rule(monkeypatch) -> None:
    runner = CliRunner()
    captured = _install_fake_app(monkeypatch, None)

    result = runner.invoke(entrypoint.cli, ["--sort-new-column", "sideways"])

    assert result.exit_code == 1
    assert "sideways" in result.output
    assert captured == {}
