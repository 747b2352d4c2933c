"""Layered configuration: config file, then environment variables, then CLI options."""

from __future__ import annotations

import os
import tomllib
from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, TypeVar

from trunkit.options import (
    ConfigError,
    ConfigOptsBuild,
    ConfigOptsClean,
    ConfigOptsHook,
    ConfigOptsProxy,
    ConfigOptsServe,
    ConfigOptsTools,
    ConfigOptsWatch,
)
from trunkit.runtime import RtcBuild, RtcClean, RtcServe, RtcWatch

T = TypeVar("T")

DEFAULT_CONFIG_FILE = "Trunk.toml"

_ENV_SECTIONS = (
    ("build", "TRUNK_BUILD_", ConfigOptsBuild),
    ("watch", "TRUNK_WATCH_", ConfigOptsWatch),
    ("serve", "TRUNK_SERVE_", ConfigOptsServe),
    ("clean", "TRUNK_CLEAN_", ConfigOptsClean),
    ("tools", "TRUNK_TOOLS_", ConfigOptsTools),
)


def _quoted(path: str | os.PathLike) -> str:
    return f'"{os.fspath(path)}"'


def _first(greater: T | None, lesser: T | None) -> T | None:
    return greater if greater is not None else lesser


def _merge_section(
    lesser: T | None, greater: T | None, combine: Callable[[T, T], T]
) -> T | None:
    if lesser is None:
        return greater
    if greater is None:
        return lesser
    return combine(lesser, greater)


def _merge_build(lesser: ConfigOptsBuild, greater: ConfigOptsBuild) -> ConfigOptsBuild:
    # Boolean flags set in a lower layer cannot be switched off by a higher one.
    return replace(
        greater,
        target=_first(greater.target, lesser.target),
        dist=_first(greater.dist, lesser.dist),
        public_url=_first(greater.public_url, lesser.public_url),
        filehash=_first(greater.filehash, lesser.filehash),
        release=greater.release or lesser.release,
        offline=greater.offline or lesser.offline,
        frozen=greater.frozen or lesser.frozen,
        locked=greater.locked or lesser.locked,
        inject_scripts=_first(greater.inject_scripts, lesser.inject_scripts),
        pattern_preload=_first(greater.pattern_preload, lesser.pattern_preload),
        pattern_script=_first(greater.pattern_script, lesser.pattern_script),
        pattern_params=_first(greater.pattern_params, lesser.pattern_params),
    )


def _merge_watch(lesser: ConfigOptsWatch, greater: ConfigOptsWatch) -> ConfigOptsWatch:
    return replace(
        greater,
        watch=_first(greater.watch, lesser.watch),
        ignore=_first(greater.ignore, lesser.ignore),
    )


def _merge_serve(lesser: ConfigOptsServe, greater: ConfigOptsServe) -> ConfigOptsServe:
    headers = dict(greater.headers)
    headers.update(lesser.headers)
    return replace(
        greater,
        proxy_backend=_first(greater.proxy_backend, lesser.proxy_backend),
        proxy_rewrite=_first(greater.proxy_rewrite, lesser.proxy_rewrite),
        address=_first(greater.address, lesser.address),
        port=_first(greater.port, lesser.port),
        proxy_ws=greater.proxy_ws or lesser.proxy_ws,
        ws_protocol=_first(greater.ws_protocol, lesser.ws_protocol),
        tls_key_path=_first(greater.tls_key_path, lesser.tls_key_path),
        tls_cert_path=_first(greater.tls_cert_path, lesser.tls_cert_path),
        no_autoreload=greater.no_autoreload or lesser.no_autoreload,
        no_spa=greater.no_spa or lesser.no_spa,
        open=greater.open or lesser.open,
        headers=headers,
        no_error_reporting=greater.no_error_reporting or lesser.no_error_reporting,
    )


def _merge_tools(lesser: ConfigOptsTools, greater: ConfigOptsTools) -> ConfigOptsTools:
    return replace(
        greater,
        sass=_first(greater.sass, lesser.sass),
        wasm_bindgen=_first(greater.wasm_bindgen, lesser.wasm_bindgen),
        wasm_opt=_first(greater.wasm_opt, lesser.wasm_opt),
        tailwindcss=_first(greater.tailwindcss, lesser.tailwindcss),
    )


def _merge_clean(lesser: ConfigOptsClean, greater: ConfigOptsClean) -> ConfigOptsClean:
    return replace(
        greater,
        dist=_first(greater.dist, lesser.dist),
        cargo=greater.cargo or lesser.cargo,
    )


def _table_list(data: Any, key: str) -> list[Mapping[str, Any]]:
    if data is None:
        return []
    if not isinstance(data, list):
        raise ConfigError(f"invalid type for `{key}`: expected an array of tables, found {data!r}")
    return data


@dataclass
class ConfigOpts:
    """All configuration options, as read from one layer or merged from several."""

    build: ConfigOptsBuild | None = None
    watch: ConfigOptsWatch | None = None
    serve: ConfigOptsServe | None = None
    clean: ConfigOptsClean | None = None
    tools: ConfigOptsTools | None = None
    proxy: list[ConfigOptsProxy] | None = None
    hooks: list[ConfigOptsHook] | None = None

    @classmethod
    def _from_mapping(cls, data: Mapping[str, Any]) -> "ConfigOpts":
        def section(key: str, kind: Any) -> Any:
            value = data.get(key)
            return None if value is None else kind.from_mapping(value)

        proxy = data.get("proxy")
        hooks = data.get("hooks")
        return cls(
            build=section("build", ConfigOptsBuild),
            watch=section("watch", ConfigOptsWatch),
            serve=section("serve", ConfigOptsServe),
            clean=section("clean", ConfigOptsClean),
            tools=section("tools", ConfigOptsTools),
            proxy=None
            if proxy is None
            else [ConfigOptsProxy.from_mapping(item) for item in _table_list(proxy, "proxy")],
            hooks=None
            if hooks is None
            else [ConfigOptsHook.from_mapping(item) for item in _table_list(hooks, "hooks")],
        )

    @classmethod
    def rtc_build(
        cls, cli_build: ConfigOptsBuild, config: str | os.PathLike | None
    ) -> RtcBuild:
        """Runtime config for the build system from all layers."""
        layer = cls.merge(cls._file_and_env_layers(config), cls(build=cli_build))
        return RtcBuild.from_options(
            layer.build or ConfigOptsBuild(),
            layer.tools or ConfigOptsTools(),
            layer.hooks or [],
            False,
        )

    @classmethod
    def rtc_watch(
        cls,
        cli_build: ConfigOptsBuild,
        cli_watch: ConfigOptsWatch,
        config: str | os.PathLike | None,
    ) -> RtcWatch:
        """Runtime config for the watch system from all layers."""
        layer = cls.merge(cls._file_and_env_layers(config), cls(build=cli_build))
        layer = cls.merge(layer, cls(watch=cli_watch))
        return RtcWatch.from_options(
            layer.build or ConfigOptsBuild(),
            layer.watch or ConfigOptsWatch(),
            layer.tools or ConfigOptsTools(),
            layer.hooks or [],
            False,
            False,
        )

    @classmethod
    def rtc_serve(
        cls,
        cli_build: ConfigOptsBuild,
        cli_watch: ConfigOptsWatch,
        cli_serve: ConfigOptsServe,
        config: str | os.PathLike | None,
    ) -> RtcServe:
        """Runtime config for the serve system from all layers."""
        layer = cls.merge(cls._file_and_env_layers(config), cls(build=cli_build))
        layer = cls.merge(layer, cls(watch=cli_watch))
        layer = cls.merge(layer, cls(serve=cli_serve))
        return RtcServe.from_options(
            layer.build or ConfigOptsBuild(),
            layer.watch or ConfigOptsWatch(),
            layer.serve or ConfigOptsServe(),
            layer.tools or ConfigOptsTools(),
            layer.hooks or [],
            layer.proxy,
        )

    @classmethod
    def rtc_clean(
        cls, cli_clean: ConfigOptsClean, config: str | os.PathLike | None
    ) -> RtcClean:
        """Runtime config for the clean system from all layers."""
        layer = cls.merge(cls._file_and_env_layers(config), cls(clean=cli_clean))
        return RtcClean.from_options(layer.clean or ConfigOptsClean())

    @classmethod
    def full(cls, config: str | os.PathLike | None) -> "ConfigOpts":
        """The configuration from the config file and environment variables."""
        return cls._file_and_env_layers(config)

    @classmethod
    def _file_and_env_layers(cls, config: str | os.PathLike | None) -> "ConfigOpts":
        file_layer = cls.from_file(config)
        try:
            env_layer = cls.from_env()
        except ConfigError as err:
            raise ConfigError("error reading trunk env var config") from err
        return cls.merge(file_layer, env_layer)

    @classmethod
    def from_file(cls, path: str | os.PathLike | None) -> "ConfigOpts":
        """Read a config file; relative paths in it are taken relative to the file."""
        toml_path = Path(path) if path is not None else Path(DEFAULT_CONFIG_FILE)
        if not toml_path.exists():
            return cls()
        if not toml_path.is_absolute():
            try:
                toml_path = toml_path.resolve(strict=True)
            except OSError as err:
                raise ConfigError(
                    f"error getting canonical path to Trunk config file {_quoted(toml_path)}"
                ) from err
        try:
            text = toml_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as err:
            raise ConfigError("error reading config file") from err
        try:
            data = tomllib.loads(text)
        except tomllib.TOMLDecodeError as err:
            raise ConfigError("error reading config file contents as TOML data") from err
        try:
            cfg = cls._from_mapping(data)
        except ConfigError as err:
            raise ConfigError("error reading config file contents as TOML data") from err

        parent = toml_path.parent

        def canonical(value: Path, what: str) -> Path:
            if value.is_absolute():
                return value
            try:
                return (parent / value).resolve(strict=True)
            except OSError as err:
                raise ConfigError(
                    f"error taking canonical path to {what} {_quoted(value)} "
                    f"in {_quoted(toml_path)}"
                ) from err

        def joined(value: Path | None) -> Path | None:
            if value is None or value.is_absolute():
                return value
            return parent / value

        if cfg.build is not None:
            if cfg.build.target is not None:
                cfg.build.target = canonical(cfg.build.target, "[build].target")
            cfg.build.dist = joined(cfg.build.dist)
        if cfg.serve is not None:
            cfg.serve.tls_key_path = joined(cfg.serve.tls_key_path)
            cfg.serve.tls_cert_path = joined(cfg.serve.tls_cert_path)
        if cfg.watch is not None:
            if cfg.watch.watch is not None:
                cfg.watch.watch = [canonical(p, "[watch].watch") for p in cfg.watch.watch]
            if cfg.watch.ignore is not None:
                cfg.watch.ignore = [canonical(p, "[watch].ignore") for p in cfg.watch.ignore]
        if cfg.clean is not None:
            cfg.clean.dist = joined(cfg.clean.dist)
        return cfg

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ConfigOpts":
        """Read the ``TRUNK_<SECTION>_<OPTION>`` environment variables."""
        env = os.environ if environ is None else environ
        sections: dict[str, Any] = {}
        for name, prefix, kind in _ENV_SECTIONS:
            values = {
                key[len(prefix):].lower(): value
                for key, value in env.items()
                if key.startswith(prefix)
            }
            sections[name] = kind.from_mapping(values)
        return cls(**sections)

    @classmethod
    def merge(cls, lesser: "ConfigOpts", greater: "ConfigOpts") -> "ConfigOpts":
        """Merge two layers; values in ``greater`` take precedence."""
        return cls(
            build=_merge_section(lesser.build, greater.build, _merge_build),
            watch=_merge_section(lesser.watch, greater.watch, _merge_watch),
            serve=_merge_section(lesser.serve, greater.serve, _merge_serve),
            clean=_merge_section(lesser.clean, greater.clean, _merge_clean),
            tools=_merge_section(lesser.tools, greater.tools, _merge_tools),
            proxy=_first(greater.proxy, lesser.proxy),
            hooks=_first(greater.hooks, lesser.hooks),
        )