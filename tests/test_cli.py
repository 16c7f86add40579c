import json
from pathlib import Path

from typer.testing import CliRunner

from itanium_demangle.__main__ import app

runner = CliRunner()


class TestDemangle:
    def test_arguments(self):
        result = runner.invoke(app, ["demangle", "_Z1fv", "main", "_ZNK3Foo3barEv"])

        assert result.exit_code == 0
        assert result.stdout.splitlines() == ["f()", "main", "Foo::bar() const"]

    def test_stdin(self):
        result = runner.invoke(app, ["demangle"], input="_Z3fooi\n_Zdlv\n")

        assert result.exit_code == 0
        assert result.stdout.splitlines() == ["foo(int)", "operator delete()"]

    def test_malformed_is_passed_through(self):
        result = runner.invoke(app, ["demangle", "_Z1fP1AS1_"])

        assert result.exit_code == 0
        assert "_Z1fP1AS1_" in result.stdout.splitlines()

    def test_options(self):
        result = runner.invoke(app, ["demangle", "--no-params", "--upper-literals", "_ZNK3Foo3barEv", "_Z1fILm5EEvv"])

        assert result.exit_code == 0
        assert result.stdout.splitlines() == ["Foo::bar", "void f<5UL>"]

    def test_config_file(self, tmp_path: Path):
        config_path = tmp_path / "config.json"
        config_path.write_text(json.dumps({"omit_return_type": True}))

        result = runner.invoke(app, ["demangle", "--config", str(config_path), "_Z1fIiEvT_"])

        assert result.exit_code == 0
        assert result.stdout.splitlines() == ["f<int>(int)"]

    def test_command_line_overrides_config_file(self, tmp_path: Path):
        config_path = tmp_path / "config.json"
        config_path.write_text(json.dumps({"recursion_limit": 2}))

        result = runner.invoke(app, ["demangle", "--config", str(config_path), "--recursion-limit", "64", "_Z1fPPi"])

        assert result.exit_code == 0
        assert result.stdout.splitlines() == ["f(int**)"]


class TestTree:
    def test_tree(self):
        result = runner.invoke(app, ["tree", "_Z1fv"])

        assert result.exit_code == 0
        assert "MangledName" in result.stdout
        assert "SourceName" in result.stdout
        assert "f()" in result.stdout

    def test_malformed(self):
        result = runner.invoke(app, ["tree", "_Z1fP1AS1_"])

        assert result.exit_code == 1
