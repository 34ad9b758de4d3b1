from __future__ import annotations

import json
from pathlib import Path

import pytest

from depslim import cli


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)


def _project(root: Path) -> Path:
    _write(root / "build.gradle", 'dependencies {\n    implementation "com.acme:widgets-lib:1.2.0"\n}\n')
    _write(root / "src" / "main" / "java" / "App.java", "import com.acme.widgets.Core;\n")
    _write(
        root / "graph.json",
        json.dumps({"com.acme:widgets-lib": ["widgets-core", "widgets-extra"]}),
    )
    return root


def test_rewrites_and_reports(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    root = _project(tmp_path)

    result = cli.main(["--path", str(root), "--graph", str(root / "graph.json")])

    assert result == 0
    out = capsys.readouterr().out
    assert "com.acme:widgets-lib: excluding widgets-extra" in out
    assert "Updated" in out
    assert 'exclude module: "widgets-extra"' in (root / "build.gradle").read_text()


def test_second_run_reports_up_to_date(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    root = _project(tmp_path)
    args = ["--path", str(root), "--graph", str(root / "graph.json")]
    cli.main(args)
    capsys.readouterr()

    cli.main(args)

    assert "already up to date" in capsys.readouterr().out


def test_dry_run_prints_diff(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    root = _project(tmp_path)
    before = (root / "build.gradle").read_text()

    cli.main(["--path", str(root), "--graph", str(root / "graph.json"), "--dry-run"])

    out = capsys.readouterr().out
    assert '+    exclude module: "widgets-extra"' in out
    assert "Dry-run complete" in out
    assert (root / "build.gradle").read_text() == before


def test_no_unused_dependencies(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    root = _project(tmp_path)
    _write(root / "graph.json", json.dumps({"com.acme:widgets-lib": ["widgets-core"]}))

    assert cli.main(["--path", str(root), "--graph", str(root / "graph.json")]) == 0
    assert "No unused dependencies detected." in capsys.readouterr().out


def test_gradle_report_source(tmp_path: Path) -> None:
    root = _project(tmp_path)
    _write(
        root / "deps.txt",
        "+--- com.acme:widgets-lib:1.2.0\n"
        "|    +--- com.acme:widgets-core:1.2.0\n"
        "|    \\--- com.acme:widgets-extra:1.2.0\n",
    )

    cli.main(["--path", str(root), "--gradle-report", str(root / "deps.txt")])

    assert 'exclude module: "widgets-extra"' in (root / "build.gradle").read_text()


def test_writes_json_report(tmp_path: Path) -> None:
    root = _project(tmp_path)
    report_path = tmp_path / "out" / "report.json"
    report_path.parent.mkdir()

    cli.main(
        [
            "--path",
            str(root),
            "--graph",
            str(root / "graph.json"),
            "--report",
            str(report_path),
        ]
    )

    data = json.loads(report_path.read_text())
    assert data["unused_modules"] == {"com.acme:widgets-lib": ["widgets-extra"]}


def test_missing_build_file_exits(tmp_path: Path) -> None:
    _write(tmp_path / "graph.json", "{}")

    with pytest.raises(SystemExit, match="No build file found"):
        cli.main(["--path", str(tmp_path), "--graph", str(tmp_path / "graph.json")])


def test_malformed_graph_exits(tmp_path: Path) -> None:
    root = _project(tmp_path)
    _write(root / "graph.json", "[]")

    with pytest.raises(SystemExit, match="expected an object"):
        cli.main(["--path", str(root), "--graph", str(root / "graph.json")])


def test_invalid_path_exits(tmp_path: Path) -> None:
    with pytest.raises(SystemExit, match="Path does not exist"):
        cli.main(["--path", str(tmp_path / "nope"), "--graph", "graph.json"])


def test_graph_sources_are_exclusive() -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--graph", "a.json", "--gradle-report", "b.txt"])
    assert excinfo.value.code == 2


def test_help_exits_zero() -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--help"])
    assert excinfo.value.code == 0


def test_undecodable_build_file_exits(tmp_path: Path) -> None:
    root = _project(tmp_path)
    (root / "build.gradle").write_bytes(b"// caf\xe9\ndependencies {\n}\n")

    with pytest.raises(SystemExit, match="Could not read build file"):
        cli.main(["--path", str(root), "--graph", str(root / "graph.json")])


def test_unwritable_report_exits(tmp_path: Path) -> None:
    root = _project(tmp_path)

    with pytest.raises(SystemExit, match="Could not write"):
        cli.main(
            [
                "--path",
                str(root),
                "--graph",
                str(root / "graph.json"),
                "--report",
                str(tmp_path / "missing" / "report.json"),
            ]
        )
