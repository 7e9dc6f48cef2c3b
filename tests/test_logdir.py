"""Tests for RunLogDir and the report command."""

import asyncio

from ftbfs.command.report import ReportCommand, format_result
from ftbfs.core.logdir import RunLogDir
from ftbfs.core.result import SOURCE_NOT_FOUND, PackageResult, describe


def test_run_directory_created(tmp_path):
    log_dir = RunLogDir(tmp_path / "logs", "20240101-120000")

    assert log_dir.run_dir == tmp_path / "logs" / "20240101-120000"
    assert log_dir.run_dir.is_dir()


def test_artifact_names(tmp_path):
    log_dir = RunLogDir(tmp_path, "run")

    assert log_dir.log_file("vim").name == "vim.log"
    assert log_dir.result_file("vim").name == "vim.result"
    assert log_dir.time_file("vim").name == "vim.time"


def test_record_writes_integers(tmp_path):
    log_dir = RunLogDir(tmp_path, "run")

    log_dir.record(PackageResult(package="vim", returncode=0, duration=93))

    assert log_dir.result_file("vim").read_text() == "0\n"
    assert log_dir.time_file("vim").read_text() == "93\n"


def test_results_round_trip(tmp_path):
    log_dir = RunLogDir(tmp_path, "run")
    log_dir.record(PackageResult(package="vim", returncode=0, duration=10))
    log_dir.record(PackageResult(package="gtk+3.0", returncode=SOURCE_NOT_FOUND))
    log_dir.log_file("vim").write_text("build output")

    results = RunLogDir(log_dir.run_dir).results()

    assert [(r.package, r.returncode, r.duration) for r in results] == [
        ("gtk+3.0", -1, 0),
        ("vim", 0, 10),
    ]
    assert results[0].log_file is None
    assert results[1].log_file == log_dir.log_file("vim")


def test_describe_codes():
    assert describe(0) == "built successfully"
    assert describe(-1) == "source not found for this release"
    assert describe(124) == "build timed out"
    assert describe(125) == "timeout command failed"
    assert describe(126) == "build command could not be invoked"
    assert describe(127) == "build command not found"
    assert describe(137) == "build killed"
    assert describe(2) == "build failed with exit status 2"


def test_success_flag():
    assert PackageResult(package="a", returncode=0).success
    assert not PackageResult(package="a", returncode=SOURCE_NOT_FOUND).success


def test_report_lists_packages(tmp_path, state, capsys):
    log_dir = RunLogDir(tmp_path, "run")
    log_dir.record(PackageResult(package="vim", returncode=0, duration=12))
    log_dir.record(PackageResult(package="htop", returncode=124, duration=900))

    exit_code = asyncio.run(
        ReportCommand(run_dir=log_dir.run_dir).run_workflow(state)
    )

    out = capsys.readouterr().out.splitlines()
    assert exit_code == 0
    assert out[0] == format_result(
        PackageResult(package="htop", returncode=124, duration=900)
    )
    assert "build timed out" in out[0]
    assert out[1].startswith("vim")
    assert out[-1] == "2 package(s), 1 failed"


def test_report_missing_directory(tmp_path, state, capsys):
    exit_code = asyncio.run(
        ReportCommand(run_dir=tmp_path / "nope").run_workflow(state)
    )

    assert exit_code == 2
    assert "no such run directory" in capsys.readouterr().err
