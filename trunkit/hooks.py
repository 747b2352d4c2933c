"""Running the user-configured hook commands of a build stage."""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Iterable, Mapping
from concurrent.futures import Future, ThreadPoolExecutor, as_completed

from trunkit.options import PipelineStage
from trunkit.runtime import RtcBuild

log = logging.getLogger(__name__)


class HookError(RuntimeError):
    """A hook command could not be started or finished with a bad status."""


def _hook_environment(cfg: RtcBuild) -> dict[str, str]:
    env = dict(os.environ)
    env.update(
        {
            "TRUNK_PROFILE": "release" if cfg.release else "debug",
            "TRUNK_HTML_FILE": os.fspath(cfg.target),
            "TRUNK_SOURCE_DIR": os.fspath(cfg.target_parent),
            "TRUNK_STAGING_DIR": os.fspath(cfg.staging_dist),
            "TRUNK_DIST_DIR": os.fspath(cfg.final_dist),
            "TRUNK_PUBLIC_URL": cfg.public_url,
        }
    )
    return env


def _run_hook(command: str, arguments: list[str], env: Mapping[str, str]) -> None:
    try:
        process = subprocess.Popen([command, *arguments], env=dict(env))
    except OSError as err:
        raise HookError(f"error spawning hook call for {command}") from err
    try:
        returncode = process.wait()
    except OSError as err:
        raise HookError(f"error calling hook to {command}") from err
    if returncode != 0:
        raise HookError(f"hook call to {command} returned a bad status")
    log.info("finished hook %s", command)


def spawn_hooks(cfg: RtcBuild, stage: PipelineStage | str) -> list[Future[None]]:
    """Start every hook configured for ``stage``; return one future per hook."""
    selected = [hook for hook in cfg.hooks if hook.stage == stage]
    if not selected:
        return []
    env = _hook_environment(cfg)
    executor = ThreadPoolExecutor(max_workers=len(selected), thread_name_prefix="hook")
    try:
        futures = []
        for hook in selected:
            log.info(
                "spawning hook %s (stage %s, arguments %r)",
                hook.command,
                stage,
                hook.command_arguments,
            )
            futures.append(
                executor.submit(_run_hook, hook.command, list(hook.command_arguments), env)
            )
    finally:
        executor.shutdown(wait=False)
    return futures


def wait_hooks(handles: Iterable[Future[None]]) -> None:
    """Wait for the given hooks, raising the first failure in completion order."""
    for future in as_completed(list(handles)):
        future.result()