import logging
import os
from pathlib import Path

import pytest

from trunkit.cli import TRACE, build_parser, eval_logging, main, run_clean, run_config_show
from trunkit.common import CommandError
from trunkit.options import ConfigOptsClean


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for key in list(os.environ):
        if key.startswith("TRUNK_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.mark.parametrize(
    "verbose, quiet, command, expected",
    [
        (0, False, "clean", logging.INFO),
        (1, False, "clean", logging.DEBUG),
        (2, False, "clean", TRACE),
        (3, True, "clean", logging.WARNING),
        (0, False, "config", logging.WARNING),
        (2, False, "tools", logging.WARNING),
    ],
)
def test_eval_logging(verbose, quiet, command, expected):
    assert eval_logging(verbose, quiet, command) == expected


def test_parser_clean_options():
    args = build_parser().parse_args(["clean", "--dist", "out", "--cargo"])
    assert args.command == "clean"
    assert args.dist == Path("out")
    assert args.cargo is True


def test_parser_global_options_after_subcommand():
    args = build_parser().parse_args(["config", "show", "--config", "x.toml", "-vv"])
    assert args.config_action == "show"
    assert args.config == Path("x.toml")
    assert args.verbose == 2


def test_parser_requires_subcommand():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_quiet_conflicts_with_verbose(clean_env):
    with pytest.raises(SystemExit):
        main(["-v", "-q", "config", "show"])


def test_run_clean_removes_dist(clean_env):
    dist = clean_env / "dist"
    (dist / "nested").mkdir(parents=True)
    (dist / "nested" / "file.txt").write_text("data")
    run_clean(ConfigOptsClean(dist=dist), clean_env / "missing.toml")
    assert not dist.exists()


def test_run_clean_missing_dist_is_fine(clean_env):
    dist = clean_env / "dist"
    run_clean(ConfigOptsClean(dist=dist), None)
    assert not dist.exists()


def test_run_clean_cargo_not_found(clean_env, monkeypatch):
    empty = clean_env / "empty-bin"
    empty.mkdir()
    monkeypatch.setenv("PATH", str(empty))
    with pytest.raises(CommandError):
        run_clean(ConfigOptsClean(dist=clean_env / "dist", cargo=True), None)


def test_run_config_show_reads_file(clean_env, capsys):
    (clean_env / "Trunk.toml").write_text('[build]\npublic_url = "/app/"\n')
    cfg = run_config_show(None)
    assert cfg.build.public_url == "/app/"
    assert "/app/" in capsys.readouterr().out


def test_main_config_show_succeeds(clean_env, capsys):
    assert main(["config", "show"]) == 0
    assert "ConfigOpts" in capsys.readouterr().out


def test_main_reports_bad_config(clean_env, capsys):
    bad = clean_env / "bad.toml"
    bad.write_text("[build\n")
    assert main(["--config", str(bad), "config", "show"]) == 1
    assert "error reading config file contents as TOML data" in capsys.readouterr().err


def test_main_clean_uses_env_config(clean_env, monkeypatch):
    dist = clean_env / "out"
    dist.mkdir()
    cfg_file = clean_env / "custom.toml"
    cfg_file.write_text('[clean]\ndist = "out"\n')
    monkeypatch.setenv("TRUNK_CONFIG", str(cfg_file))
    assert main(["clean"]) == 0
    assert not dist.exists()