"""Tests for lovescript.cli."""

from pathlib import Path

import pytest

from lovescript import cli
from lovescript.cli import main
from lovescript.emitter import CONF_HEAD, MAIN_TAIL
from lovescript.supervisor import ProcessSupervisor


class TestCliBuild:

    def test_build_success(self, project, capsys):
        rc = main(["build", str(project), "--no-pretty"])
        assert rc == 0
        out = capsys.readouterr().out
        assert out.strip() == "Found 0 errors."
        build = project / "build"
        assert (build / "main.lua").is_file()
        assert (build / "player.lua").is_file()
        assert (build / "conf.lua").read_text(encoding="utf-8") == CONF_HEAD

    def test_build_has_no_hot_reload_glue(self, project):
        main(["build", str(project), "--no-pretty"])
        build = project / "build"
        assert MAIN_TAIL not in (build / "main.lua").read_text(encoding="utf-8")
        assert not (build / "lume.lua").exists()
        assert not (build / "lurker.lua").exists()

    def test_build_with_errors(self, project, capsys):
        (project / "src" / "player.lvs").write_text("let player = $\n", encoding="utf-8")
        rc = main(["build", str(project), "--no-pretty"])
        assert rc == 1
        out = capsys.readouterr().out
        assert "error LS1127: Invalid character '$'." in out
        assert out.strip().endswith("Found 1 error.")

    def test_build_out_dir(self, project, tmp_path):
        target = tmp_path / "dist"
        assert main(["build", str(project), "--out-dir", str(target)]) == 0
        assert (target / "main.lua").is_file()
        assert not (project / "build").exists()

    def test_build_from_config_file_path(self, project):
        assert main(["build", str(project / "lovescript.yaml")]) == 0

    def test_missing_config(self, tmp_path, capsys):
        rc = main(["build", str(tmp_path)])
        assert rc == 1
        err = capsys.readouterr().err
        assert err.startswith("Error: Could not find lovescript.yaml")


class TestCliWatch:

    def test_watch_uses_fresh_temporary_out_dir(self, project, monkeypatch):
        seen = {}

        class FakeController:
            def __init__(self, path, overrides):
                seen["path"] = path
                seen["overrides"] = overrides
                Path(overrides["out_dir"], "main.lua").write_text("x = 1\n", encoding="utf-8")

            def run(self):
                return 0

        monkeypatch.setattr(cli, "WatchController", FakeController)
        rc = main(["watch", str(project), "--runtime", "love", "--pretty"])
        assert rc == 0
        overrides = seen["overrides"]
        assert seen["path"] == str(project)
        assert overrides["runtime"] == "love"
        assert overrides["pretty"] is True
        assert overrides["source_map"] is True
        assert overrides["out_dir"].name.startswith("lovescript-")
        assert not overrides["out_dir"].exists()

    def test_watch_missing_config(self, tmp_path, capsys):
        rc = main(["watch", str(tmp_path)])
        assert rc == 1
        assert "Could not find lovescript.yaml" in capsys.readouterr().err


class TestCliStart:

    @pytest.fixture
    def launches(self, monkeypatch, fake_popen):
        """Runtime launches, with the output directory as seen at launch time."""
        seen = []
        fake_popen.exit_code = 0

        def popen(args, **kwargs):
            out_dir = Path(args[1])
            seen.append((list(args), sorted(p.name for p in out_dir.iterdir())))
            return fake_popen(args)

        monkeypatch.setattr(cli, "ProcessSupervisor", lambda runtime: ProcessSupervisor(runtime, popen=popen))
        return seen

    def test_start_compiles_once_and_runs(self, project, launches, capsys):
        rc = main(["start", str(project), "--no-pretty"])
        assert rc == 0
        assert capsys.readouterr().out.strip() == "Found 0 errors."
        ((args, names),) = launches
        assert args[0] == "lovec"
        assert names == ["conf.lua", "main.lua", "player.lua"]
        out_dir = Path(args[1])
        assert out_dir.name.startswith("lovescript-")
        assert not out_dir.exists()
        assert not (project / "build").exists()

    def test_start_runtime_override(self, project, launches):
        assert main(["start", str(project), "--runtime", "love"]) == 0
        assert launches[0][0][0] == "love"

    def test_start_with_errors_does_not_run(self, project, launches, capsys):
        (project / "src" / "player.lvs").write_text("let player = $\n", encoding="utf-8")
        assert main(["start", str(project), "--no-pretty"]) == 1
        assert capsys.readouterr().out.strip().endswith("Found 1 error.")
        assert launches == []

    def test_start_spawn_failure(self, project, monkeypatch, capsys):
        def missing(args, **kwargs):
            raise FileNotFoundError(2, "No such file or directory")

        monkeypatch.setattr(cli, "ProcessSupervisor", lambda runtime: ProcessSupervisor(runtime, popen=missing))
        assert main(["start", str(project)]) == 1
        assert "Error: Could not start runtime 'lovec'" in capsys.readouterr().err


class TestCliGeneral:

    def test_no_command(self, capsys):
        assert main([]) == 1
        assert "usage" in capsys.readouterr().out.lower()
