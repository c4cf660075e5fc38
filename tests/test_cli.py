"""Tests for the dsadopt CLI commands."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest
import yaml
from click.testing import CliRunner

from dsadopt.cli import cli
from dsadopt.config import CONFIG_FILE_NAME, DEFAULT_HISTORY_DIR, load_config, validate_config

if TYPE_CHECKING:
    from pathlib import Path


_CONFIG = """\
design_systems:
  - name: TUI
    packages: ["@tui/components"]
local_library_patterns: ["@shared/**"]
"""

_FACTS = """\
repositories:
  - name: web
    path: /work/web
    usages:
      - {component: Button, import: "@tui/components", file: a.tsx, props: [size]}
      - {component: Input, import: "@tui/components", file: a.tsx}
      - {component: Card, import: "@tui/components", file: b.tsx}
      - {component: Layout, import: "@shared/Layout", file: b.tsx}
      - {component: Custom, import: ./Custom, file: b.tsx}
      - {component: div, file: b.tsx}
"""


def _write_file(root: Path, name: str, content: str) -> Path:
    path = root / name
    path.write_text(content, encoding="utf-8")
    return path


def _project(tmp_path: Path, config: str = _CONFIG) -> tuple[Path, Path]:
    _write_file(tmp_path, ".dsadopt.yml", config)
    facts = _write_file(tmp_path, "facts.yml", _FACTS)
    return tmp_path, facts


class TestConfigCommands:
    def test_validate_ok(self, tmp_path: Path) -> None:
        root, _ = _project(tmp_path)
        result = CliRunner().invoke(cli, ["config", "validate", "--path", str(root)])
        assert result.exit_code == 0

    def test_validate_reports_errors(self, tmp_path: Path) -> None:
        _write_file(tmp_path, ".dsadopt.yml", "design_systems: []\n")
        result = CliRunner().invoke(cli, ["config", "validate", "--path", str(tmp_path)])
        assert result.exit_code != 0

    def test_validate_broken_yaml(self, tmp_path: Path) -> None:
        _write_file(tmp_path, ".dsadopt.yml", "design_systems: [\n")
        result = CliRunner().invoke(cli, ["config", "validate", "--path", str(tmp_path)])
        assert result.exit_code != 0

    def test_show_json(self, tmp_path: Path) -> None:
        root, _ = _project(tmp_path)
        result = CliRunner().invoke(cli, ["config", "show", "--path", str(root), "--json-output"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["design_systems"] == [{"name": "TUI", "packages": ["@tui/components"]}]
        assert "raw" not in data

    def test_show_yaml(self, tmp_path: Path) -> None:
        root, _ = _project(tmp_path)
        result = CliRunner().invoke(cli, ["config", "show", "--path", str(root)])
        assert result.exit_code == 0
        assert yaml.safe_load(result.stdout)["local_library_patterns"] == ["@shared/**"]


class TestAnalyzeCommand:
    def test_writes_report(self, tmp_path: Path) -> None:
        root, facts = _project(tmp_path)
        output = tmp_path / "out" / "report.json"

        result = CliRunner().invoke(
            cli,
            ["analyze", str(facts), "--config", str(root), "--output", str(output), "--quiet"],
        )

        assert result.exit_code == 0, result.output
        data = json.loads(output.read_text(encoding="utf-8"))
        assert data["tool"] == "dsadopt"
        assert data["summary"]["adoption_rate"] == pytest.approx(60.0)
        assert data["meta"]["repositories_scanned"] == 1
        assert data["meta"]["files_scanned"] == 2

    def test_threshold_violation_exits_non_zero(self, tmp_path: Path) -> None:
        root, facts = _project(
            tmp_path, _CONFIG + "thresholds:\n  min_adoption_rate: 90\n"
        )
        output = tmp_path / "report.json"

        result = CliRunner().invoke(
            cli,
            ["analyze", str(facts), "--config", str(root), "-o", str(output), "-q"],
        )

        assert result.exit_code == 1
        assert output.exists()

    def test_baseline_comparison(self, tmp_path: Path) -> None:
        root, facts = _project(tmp_path)
        baseline = _write_file(
            tmp_path,
            "baseline.json",
            json.dumps(
                {
                    "meta": {"timestamp": "2026-01-01T00:00:00+00:00"},
                    "summary": {"adoption_rate": 50.0, "design_systems": []},
                    "by_repository": [{"name": "web", "adoption_rate": 50.0}],
                    "by_component": {"design_systems": []},
                }
            ),
        )
        output = tmp_path / "report.json"

        result = CliRunner().invoke(
            cli,
            [
                "analyze",
                str(facts),
                "--config",
                str(root),
                "--baseline",
                str(baseline),
                "-o",
                str(output),
                "-q",
            ],
        )

        assert result.exit_code == 0, result.output
        comparison = json.loads(output.read_text(encoding="utf-8"))["comparison"]
        assert comparison["adoption_delta"] == pytest.approx(10.0)
        (repo_delta,) = comparison["by_repository"]
        assert repo_delta["name"] == "web"
        assert repo_delta["adoption_delta"] == pytest.approx(10.0)
        assert repo_delta["trend"] == "up"
        assert comparison["new_components"] == ["Button", "Card", "Input"]

    def test_csv_format_to_stdout(self, tmp_path: Path) -> None:
        root, facts = _project(tmp_path)

        result = CliRunner().invoke(
            cli, ["analyze", str(facts), "--config", str(root), "--format", "csv", "-q"]
        )

        assert result.exit_code == 0, result.output
        assert "# Total Adoption: 60.00%" in result.output
        assert "web,60.00,60.00,2,60.00,1,1,0" in result.output
        assert "Button,design-system,TUI" in result.output

    def test_csv_format_to_file(self, tmp_path: Path) -> None:
        root, facts = _project(tmp_path)
        output = tmp_path / "report.csv"

        result = CliRunner().invoke(
            cli,
            ["analyze", str(facts), "--config", str(root), "-f", "csv", "-o", str(output), "-q"],
        )

        assert result.exit_code == 0, result.output
        assert output.read_text(encoding="utf-8").startswith("# dsadopt adoption report\n")

    def test_table_format_saves_json_when_output_given(self, tmp_path: Path) -> None:
        root, facts = _project(tmp_path)
        output = tmp_path / "report.json"

        result = CliRunner().invoke(
            cli,
            ["analyze", str(facts), "--config", str(root), "-f", "table", "-o", str(output)],
        )

        assert result.exit_code == 0, result.output
        assert json.loads(output.read_text(encoding="utf-8"))["tool"] == "dsadopt"

    @pytest.mark.parametrize(("minimum", "exit_code"), [("90", 1), ("50", 0)])
    def test_min_adoption_overrides_config(
        self, tmp_path: Path, minimum: str, exit_code: int
    ) -> None:
        root, facts = _project(tmp_path, _CONFIG + "thresholds:\n  min_adoption_rate: 10\n")

        result = CliRunner().invoke(
            cli,
            [
                "analyze",
                str(facts),
                "--config",
                str(root),
                "--min-adoption",
                minimum,
                "-o",
                str(tmp_path / "report.json"),
                "-q",
            ],
        )

        assert result.exit_code == exit_code

    def test_min_adoption_out_of_range_is_usage_error(self, tmp_path: Path) -> None:
        root, facts = _project(tmp_path)
        result = CliRunner().invoke(
            cli, ["analyze", str(facts), "--config", str(root), "--min-adoption", "120"]
        )
        assert result.exit_code == 2

    def test_save_history(self, tmp_path: Path) -> None:
        root, facts = _project(tmp_path, _CONFIG + "history_dir: metrics-history\n")

        for _ in range(2):
            result = CliRunner().invoke(
                cli,
                [
                    "analyze",
                    str(facts),
                    "--config",
                    str(root),
                    "--save-history",
                    "-o",
                    str(tmp_path / "report.json"),
                    "-q",
                ],
            )
            assert result.exit_code == 0, result.output

        history = tmp_path / "metrics-history"
        manifest = json.loads((history / "manifest.json").read_text(encoding="utf-8"))
        assert len(manifest["scans"]) == 2
        assert manifest["scans"][0]["adoption_rate"] == pytest.approx(60.0)
        assert (history / manifest["latest_scan"]).is_file()

    def test_empty_facts_warns(self, tmp_path: Path) -> None:
        root, _ = _project(tmp_path)
        facts = _write_file(tmp_path, "empty.yml", "repositories: []\n")

        result = CliRunner().invoke(
            cli,
            ["analyze", str(facts), "--config", str(root), "-o", str(tmp_path / "r.json"), "-q"],
        )

        assert result.exit_code == 0, result.output
        assert "No repositories recorded" in result.output

    def test_malformed_facts_abort(self, tmp_path: Path) -> None:
        root, _ = _project(tmp_path)
        facts = _write_file(tmp_path, "bad.yml", "repositories: nope\n")
        result = CliRunner().invoke(cli, ["analyze", str(facts), "--config", str(root), "-q"])
        assert result.exit_code != 0

    def test_invalid_config_aborts(self, tmp_path: Path) -> None:
        _, facts = _project(tmp_path, "design_systems: []\n")
        result = CliRunner().invoke(cli, ["analyze", str(facts), "--config", str(tmp_path), "-q"])
        assert result.exit_code != 0


class TestInitCommand:
    def test_writes_valid_starter_config(self, tmp_path: Path) -> None:
        result = CliRunner().invoke(cli, ["init", "--path", str(tmp_path)])

        assert result.exit_code == 0, result.output
        written = tmp_path / CONFIG_FILE_NAME
        assert written.read_text(encoding="utf-8").startswith("# dsadopt configuration\n")
        config = load_config(tmp_path)
        assert validate_config(config) == []
        assert config.design_system_names == ["MyDS"]
        assert config.history_dir == DEFAULT_HISTORY_DIR

    def test_existing_config_is_left_alone(self, tmp_path: Path) -> None:
        existing = _write_file(tmp_path, CONFIG_FILE_NAME, _CONFIG)

        result = CliRunner().invoke(cli, ["init", "--path", str(tmp_path)])

        assert result.exit_code == 0
        assert "already exists" in result.output
        assert existing.read_text(encoding="utf-8") == _CONFIG


class TestCompareCommand:
    def test_prints_comparison(self, tmp_path: Path) -> None:
        def snapshot(rate: float) -> str:
            return json.dumps(
                {
                    "meta": {"timestamp": f"ts-{rate}"},
                    "summary": {"adoption_rate": rate, "design_systems": []},
                    "by_repository": [],
                    "by_component": {"design_systems": []},
                }
            )

        before = _write_file(tmp_path, "before.json", snapshot(30.0))
        after = _write_file(tmp_path, "after.json", snapshot(45.0))

        result = CliRunner().invoke(cli, ["compare", str(before), str(after)])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["adoption_delta"] == 15.0
        assert data["baseline_date"] == "ts-30.0"

    def test_non_object_snapshot_aborts(self, tmp_path: Path) -> None:
        before = _write_file(tmp_path, "before.json", "[]")
        after = _write_file(tmp_path, "after.json", "{}")
        result = CliRunner().invoke(cli, ["compare", str(before), str(after)])
        assert result.exit_code != 0
