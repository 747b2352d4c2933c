import sys
from pathlib import Path

import pytest

from trunkit.hooks import HookError, spawn_hooks, wait_hooks
from trunkit.options import ConfigOptsHook, ConfigOptsTools, PipelineStage
from trunkit.runtime import Features, RtcBuild


def make_cfg(tmp_path: Path, hooks, release=False) -> RtcBuild:
    return RtcBuild(
        target=tmp_path / "index.html",
        target_parent=tmp_path,
        release=release,
        offline=False,
        frozen=False,
        locked=False,
        public_url="/app/",
        filehash=True,
        final_dist=tmp_path / "dist",
        staging_dist=tmp_path / "dist" / ".stage",
        cargo_features=Features(all_features=True),
        tools=ConfigOptsTools(),
        hooks=hooks,
        inject_autoloader=True,
        inject_scripts=True,
    )


def env_hook(stage, variable, out: Path) -> ConfigOptsHook:
    script = "import os, sys; open(sys.argv[1], 'w').write(os.environ[sys.argv[2]])"
    return ConfigOptsHook(
        stage=stage,
        command=sys.executable,
        command_arguments=["-c", script, str(out), variable],
    )


def test_hook_sees_debug_profile(tmp_path):
    out = tmp_path / "profile.txt"
    cfg = make_cfg(tmp_path, [env_hook(PipelineStage.BUILD, "TRUNK_PROFILE", out)])
    wait_hooks(spawn_hooks(cfg, PipelineStage.BUILD))
    assert out.read_text() == "debug"


def test_hook_sees_release_profile(tmp_path):
    out = tmp_path / "profile.txt"
    cfg = make_cfg(
        tmp_path, [env_hook(PipelineStage.PRE_BUILD, "TRUNK_PROFILE", out)], release=True
    )
    wait_hooks(spawn_hooks(cfg, PipelineStage.PRE_BUILD))
    assert out.read_text() == "release"


@pytest.mark.parametrize(
    "variable, attribute",
    [
        ("TRUNK_STAGING_DIR", "staging_dist"),
        ("TRUNK_DIST_DIR", "final_dist"),
        ("TRUNK_SOURCE_DIR", "target_parent"),
        ("TRUNK_HTML_FILE", "target"),
        ("TRUNK_PUBLIC_URL", "public_url"),
    ],
)
def test_hook_environment_matches_config(tmp_path, variable, attribute):
    out = tmp_path / "value.txt"
    cfg = make_cfg(tmp_path, [env_hook(PipelineStage.POST_BUILD, variable, out)])
    wait_hooks(spawn_hooks(cfg, PipelineStage.POST_BUILD))
    assert out.read_text() == str(getattr(cfg, attribute))


def test_only_hooks_of_the_stage_are_spawned(tmp_path):
    out = tmp_path / "value.txt"
    cfg = make_cfg(
        tmp_path,
        [
            env_hook(PipelineStage.PRE_BUILD, "TRUNK_PROFILE", out),
            env_hook(PipelineStage.BUILD, "TRUNK_PROFILE", out),
        ],
    )
    handles = spawn_hooks(cfg, PipelineStage.POST_BUILD)
    assert handles == []
    wait_hooks(handles)
    assert not out.exists()


def test_hooks_of_the_stage_all_run(tmp_path):
    first = tmp_path / "a.txt"
    second = tmp_path / "b.txt"
    cfg = make_cfg(
        tmp_path,
        [
            env_hook(PipelineStage.BUILD, "TRUNK_PROFILE", first),
            env_hook(PipelineStage.BUILD, "TRUNK_PROFILE", second),
        ],
    )
    handles = spawn_hooks(cfg, "build")
    assert len(handles) == 2
    wait_hooks(handles)
    assert first.read_text() == second.read_text() == "debug"


def test_bad_status_raises(tmp_path):
    hook = ConfigOptsHook(
        stage=PipelineStage.BUILD,
        command=sys.executable,
        command_arguments=["-c", "raise SystemExit(3)"],
    )
    cfg = make_cfg(tmp_path, [hook])
    with pytest.raises(HookError, match="returned a bad status"):
        wait_hooks(spawn_hooks(cfg, PipelineStage.BUILD))


def test_missing_command_raises(tmp_path):
    missing = str(tmp_path / "no-such-command")
    hook = ConfigOptsHook(stage=PipelineStage.BUILD, command=missing)
    cfg = make_cfg(tmp_path, [hook])
    with pytest.raises(HookError) as excinfo:
        wait_hooks(spawn_hooks(cfg, PipelineStage.BUILD))
    assert str(excinfo.value) == f"error spawning hook call for {missing}"