"""Runtime configuration derived from the merged configuration layers."""

from __future__ import annotations

import ipaddress
import logging
import os
import ssl
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path

from trunkit.options import (
    ConfigError,
    ConfigOptsBuild,
    ConfigOptsClean,
    ConfigOptsHook,
    ConfigOptsProxy,
    ConfigOptsServe,
    ConfigOptsTools,
    ConfigOptsWatch,
    WsProtocol,
)

log = logging.getLogger(__name__)

DIST_DIR = "dist"
"""Default directory for final build artifacts."""
STAGE_DIR = ".stage"
"""Directory used to stage build artifacts during an active build."""

DEFAULT_POLL_INTERVAL = timedelta(seconds=5)
DEFAULT_PORT = 8080
DEFAULT_ADDRESS = ipaddress.IPv4Address("127.0.0.1")


def _quoted(path: str | os.PathLike) -> str:
    return f'"{os.fspath(path)}"'


def _canonical(path: Path) -> Path:
    return path.resolve(strict=True)


@dataclass(frozen=True)
class Features:
    """Cargo feature selection: all features, or an explicit (possibly empty) list."""

    all_features: bool = False
    features: str | None = None
    no_default_features: bool = False


@dataclass
class RtcBuild:
    """Runtime config for the build system."""

    target: Path
    target_parent: Path
    release: bool
    offline: bool
    frozen: bool
    locked: bool
    public_url: str
    filehash: bool
    final_dist: Path
    staging_dist: Path
    cargo_features: Features
    tools: ConfigOptsTools
    hooks: list[ConfigOptsHook]
    inject_autoloader: bool
    inject_scripts: bool
    pattern_script: str | None = None
    pattern_preload: str | None = None
    pattern_params: dict[str, str] | None = None

    @classmethod
    def from_options(
        cls,
        opts: ConfigOptsBuild,
        tools: ConfigOptsTools,
        hooks: list[ConfigOptsHook],
        inject_autoloader: bool,
    ) -> "RtcBuild":
        """Build the runtime config, creating the dist directory if it is missing."""
        pre_target = opts.target if opts.target is not None else Path("index.html")
        try:
            target = _canonical(Path(pre_target))
        except OSError as err:
            raise ConfigError(
                f"error getting canonical path to source HTML file {_quoted(pre_target)}"
            ) from err
        target_parent = target.parent

        final_dist = Path(opts.dist) if opts.dist is not None else target_parent / DIST_DIR
        if not final_dist.exists():
            try:
                final_dist.mkdir()
            except OSError as err:
                raise ConfigError(
                    f"error creating final dist directory {_quoted(final_dist)}"
                ) from err
        try:
            final_dist = _canonical(final_dist)
        except OSError as err:
            raise ConfigError("error taking canonical path to dist dir") from err
        staging_dist = final_dist / STAGE_DIR

        if opts.all_features and (opts.no_default_features or opts.features is not None):
            raise ConfigError(
                "Cannot combine --all-features with --no-default-features and/or --features"
            )
        if opts.all_features:
            cargo_features = Features(all_features=True)
        else:
            cargo_features = Features(
                features=opts.features, no_default_features=opts.no_default_features
            )

        return cls(
            target=target,
            target_parent=target_parent,
            release=opts.release,
            offline=opts.offline,
            frozen=opts.frozen,
            locked=opts.locked,
            public_url=opts.public_url if opts.public_url is not None else "/",
            filehash=True if opts.filehash is None else opts.filehash,
            final_dist=final_dist,
            staging_dist=staging_dist,
            cargo_features=cargo_features,
            tools=tools,
            hooks=list(hooks),
            inject_autoloader=inject_autoloader,
            inject_scripts=True if opts.inject_scripts is None else opts.inject_scripts,
            pattern_script=opts.pattern_script,
            pattern_preload=opts.pattern_preload,
            pattern_params=opts.pattern_params,
        )


def _canonical_all(paths: list[Path] | None, kind: str) -> list[Path]:
    result = []
    for path in paths or []:
        try:
            result.append(_canonical(Path(path)))
        except OSError as err:
            raise ConfigError(f"invalid {kind} path provided: {_quoted(path)}") from err
    return result


@dataclass
class RtcWatch:
    """Runtime config for the watch system."""

    build: RtcBuild
    paths: list[Path]
    ignored_paths: list[Path]
    poll: timedelta | None
    enable_cooldown: bool
    no_error_reporting: bool

    @classmethod
    def from_options(
        cls,
        build_opts: ConfigOptsBuild,
        opts: ConfigOptsWatch,
        tools: ConfigOptsTools,
        hooks: list[ConfigOptsHook],
        inject_autoloader: bool,
        no_error_reporting: bool,
    ) -> "RtcWatch":
        """Build the runtime config, canonicalising watched and ignored paths."""
        build = RtcBuild.from_options(build_opts, tools, hooks, inject_autoloader)
        log.debug("Disable error reporting: %s", no_error_reporting)

        paths = _canonical_all(opts.watch, "watch") or [build.target_parent]
        ignored_paths = _canonical_all(opts.ignore, "ignore")
        ignored_paths.append(build.final_dist)

        poll = None
        if opts.poll:
            poll = opts.poll_interval if opts.poll_interval is not None else DEFAULT_POLL_INTERVAL

        return cls(
            build=build,
            paths=paths,
            ignored_paths=ignored_paths,
            poll=poll,
            enable_cooldown=opts.enable_cooldown,
            no_error_reporting=no_error_reporting,
        )


@dataclass
class RtcServe:
    """Runtime config for the serve system."""

    watch: RtcWatch
    address: ipaddress.IPv4Address | ipaddress.IPv6Address
    port: int
    open: bool
    proxy_backend: str | None
    proxy_rewrite: str | None
    proxy_ws: bool
    proxy_insecure: bool
    proxies: list[ConfigOptsProxy] | None
    no_autoreload: bool
    no_spa: bool
    headers: dict[str, str] = field(default_factory=dict)
    ws_protocol: WsProtocol | None = None
    tls: ssl.SSLContext | None = None

    @classmethod
    def from_options(
        cls,
        build_opts: ConfigOptsBuild,
        watch_opts: ConfigOptsWatch,
        opts: ConfigOptsServe,
        tools: ConfigOptsTools,
        hooks: list[ConfigOptsHook],
        proxies: list[ConfigOptsProxy] | None,
    ) -> "RtcServe":
        """Build the runtime config, loading TLS material when configured."""
        watch = RtcWatch.from_options(
            build_opts,
            watch_opts,
            tools,
            hooks,
            not opts.no_autoreload,
            opts.no_error_reporting,
        )
        key_path = (
            absolute_path(opts.tls_key_path, "tls_key_path")
            if opts.tls_key_path is not None
            else None
        )
        cert_path = (
            absolute_path(opts.tls_cert_path, "tls_cert_path")
            if opts.tls_cert_path is not None
            else None
        )
        tls = tls_config(key_path, cert_path)
        return cls(
            watch=watch,
            address=opts.address if opts.address is not None else DEFAULT_ADDRESS,
            port=opts.port if opts.port is not None else DEFAULT_PORT,
            open=opts.open,
            proxy_backend=opts.proxy_backend,
            proxy_rewrite=opts.proxy_rewrite,
            proxy_ws=opts.proxy_ws,
            proxy_insecure=opts.proxy_insecure,
            proxies=proxies,
            no_autoreload=opts.no_autoreload,
            no_spa=opts.no_spa,
            headers=dict(opts.headers),
            ws_protocol=opts.ws_protocol,
            tls=tls,
        )


def tls_config(
    tls_key_path: str | os.PathLike | None, tls_cert_path: str | os.PathLike | None
) -> ssl.SSLContext | None:
    """Load a server TLS context when both key and certificate are given."""
    if tls_key_path is not None and tls_cert_path is not None:
        log.info("🔐 Private key %s", os.fspath(tls_key_path))
        log.info("🔒 Public key %s", os.fspath(tls_cert_path))
        context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
        try:
            context.load_cert_chain(os.fspath(tls_cert_path), os.fspath(tls_key_path))
        except (OSError, ssl.SSLError) as err:
            raise ConfigError("loading TLS cert/key failed") from err
        return context
    if tls_cert_path is not None:
        raise ConfigError("TLS cert path provided without key path")
    if tls_key_path is not None:
        raise ConfigError("TLS key path provided without cert path")
    return None


def absolute_path(path: str | os.PathLike, file_description: str) -> Path:
    """Return the canonical form of ``path``, which must exist."""
    try:
        return _canonical(Path(path))
    except OSError as err:
        raise ConfigError(
            f"error getting canonical path to {file_description} file {_quoted(path)}"
        ) from err


@dataclass
class RtcClean:
    """Runtime config for the clean system."""

    dist: Path
    cargo: bool

    @classmethod
    def from_options(cls, opts: ConfigOptsClean) -> "RtcClean":
        """Build the runtime config; the dist directory defaults to ``dist``."""
        return cls(
            dist=Path(opts.dist) if opts.dist is not None else Path(DIST_DIR),
            cargo=opts.cargo,
        )