"""Configuration option models read from the config file, the environment or the CLI."""

from __future__ import annotations

import ipaddress
import os
import re
import string
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import timedelta
from enum import StrEnum
from pathlib import Path
from typing import Any, TypeVar

T = TypeVar("T")


class ConfigError(ValueError):
    """Configuration data could not be interpreted."""


class PipelineStage(StrEnum):
    """The build stage at which a hook runs."""

    PRE_BUILD = "pre_build"
    BUILD = "build"
    POST_BUILD = "post_build"


class WsProtocol(StrEnum):
    """Protocol of the auto-reload WebSocket connection."""

    WSS = "wss"
    WS = "ws"


class CrossOriginParseError(ValueError):
    """A cross-origin setting had an unknown value."""

    def __init__(self) -> None:
        super().__init__("invalid value")


class CrossOrigin(StrEnum):
    """Cross-origin setting; ``ANONYMOUS`` is the default."""

    ANONYMOUS = "anonymous"
    USE_CREDENTIALS = "use-credentials"

    @classmethod
    def parse(cls, value: str) -> "CrossOrigin":
        """Parse an attribute value; an empty string means anonymous."""
        if value in ("", "anonymous"):
            return cls.ANONYMOUS
        if value == "use-credentials":
            return cls.USE_CREDENTIALS
        raise CrossOriginParseError()


_DURATION_UNITS: dict[str, int] = {}
for _names, _nanos in (
    (("nsec", "ns"), 1),
    (("usec", "us"), 1_000),
    (("msec", "ms"), 1_000_000),
    (("seconds", "second", "sec", "s"), 1_000_000_000),
    (("minutes", "minute", "min", "m"), 60 * 1_000_000_000),
    (("hours", "hour", "hr", "h"), 3_600 * 1_000_000_000),
    (("days", "day", "d"), 86_400 * 1_000_000_000),
    (("weeks", "week", "w"), 604_800 * 1_000_000_000),
    (("months", "month", "M"), 2_630_016 * 1_000_000_000),
    (("years", "year", "y"), 31_557_600 * 1_000_000_000),
):
    for _name in _names:
        _DURATION_UNITS[_name] = _nanos

_DURATION_ITEM = re.compile(r"\s*(\d+)\s*([A-Za-z]*)\s*")


def parse_duration(text: str) -> timedelta:
    """Parse a human-readable duration such as ``5s``, ``100ms`` or ``1m 30s``."""
    if not isinstance(text, str):
        raise ConfigError(f"invalid duration: {text!r}")
    if not text.strip():
        raise ConfigError("value was empty")
    total_nanos = 0
    pos = 0
    while pos < len(text):
        match = _DURATION_ITEM.match(text, pos)
        if match is None:
            raise ConfigError(f"expected number at {pos} in {text!r}")
        number, unit = match.groups()
        if not unit:
            raise ConfigError(f"time unit needed, for example {number}sec or {number}ms")
        if unit not in _DURATION_UNITS:
            raise ConfigError(f"unknown time unit {unit!r} in {text!r}")
        total_nanos += int(number) * _DURATION_UNITS[unit]
        pos = match.end()
    return timedelta(microseconds=total_nanos // 1_000)


_URI_CHARS = frozenset(string.ascii_letters + string.digits + "-._~:/?#[]@!$&'()*+,;=%")
_SCHEME = re.compile(r"[A-Za-z][A-Za-z0-9+.\-]*")


def parse_uri(value: Any) -> str:
    """Validate a URI string and return it unchanged."""
    if not isinstance(value, str):
        raise ConfigError(f"invalid type: expected a URI string, found {value!r}")
    if not value:
        raise ConfigError("empty string")
    if any(char not in _URI_CHARS for char in value):
        raise ConfigError(f"invalid uri character in {value!r}")
    if "://" in value:
        scheme, _, rest = value.partition("://")
        if not _SCHEME.fullmatch(scheme):
            raise ConfigError(f"invalid scheme in {value!r}")
        authority = re.split(r"[/?#]", rest, maxsplit=1)[0]
        if not authority:
            raise ConfigError(f"invalid format: missing authority in {value!r}")
        host_port = authority.rpartition("@")[2]
        if host_port.startswith("["):
            port = host_port.partition("]")[2].removeprefix(":")
        else:
            port = host_port.rpartition(":")[2] if ":" in host_port else ""
        if port and (not port.isdigit() or int(port) > 65_535):
            raise ConfigError(f"invalid port in {value!r}")
    return value


def _mapping(data: Any, what: str) -> Mapping[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ConfigError(f"invalid type for {what}: expected a table, found {data!r}")
    return data


def _optional(data: Mapping[str, Any], key: str, convert: Callable[[Any, str], T]) -> T | None:
    value = data.get(key)
    return None if value is None else convert(value, key)


def _required(
    data: Mapping[str, Any], key: str, convert: Callable[[Any, str], T]
) -> T:
    if data.get(key) is None:
        raise ConfigError(f"missing field `{key}`")
    return convert(data[key], key)


def _bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    if value in ("true", "false"):
        return value == "true"
    raise ConfigError(f"invalid value for `{key}`: expected a boolean, found {value!r}")


def _flag(data: Mapping[str, Any], key: str) -> bool:
    return bool(_optional(data, key, _bool))


def _str(value: Any, key: str) -> str:
    if isinstance(value, str):
        return value
    raise ConfigError(f"invalid value for `{key}`: expected a string, found {value!r}")


def _path(value: Any, key: str) -> Path:
    if isinstance(value, (str, os.PathLike)):
        return Path(value)
    raise ConfigError(f"invalid value for `{key}`: expected a path, found {value!r}")


def _path_list(value: Any, key: str) -> list[Path]:
    if isinstance(value, str):
        return [Path(part) for part in value.split(",")]
    if isinstance(value, (list, tuple)):
        return [_path(item, key) for item in value]
    raise ConfigError(f"invalid value for `{key}`: expected a list of paths, found {value!r}")


def _str_list(value: Any, key: str) -> list[str]:
    if isinstance(value, (list, tuple)):
        return [_str(item, key) for item in value]
    raise ConfigError(f"invalid value for `{key}`: expected a list of strings, found {value!r}")


def _str_map(value: Any, key: str) -> dict[str, str]:
    if not isinstance(value, Mapping):
        raise ConfigError(f"invalid value for `{key}`: expected a table, found {value!r}")
    return {_str(name, key): _str(item, key) for name, item in value.items()}


def _port(value: Any, key: str) -> int:
    if isinstance(value, str) and value.isdigit():
        value = int(value)
    if isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= 65_535:
        return value
    raise ConfigError(f"invalid value for `{key}`: expected a port number, found {value!r}")


def _ip(value: Any, key: str) -> ipaddress.IPv4Address | ipaddress.IPv6Address:
    if isinstance(value, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
        return value
    try:
        return ipaddress.ip_address(_str(value, key))
    except ValueError as err:
        raise ConfigError(f"invalid value for `{key}`: {err}") from err


def _duration(value: Any, key: str) -> timedelta:
    if isinstance(value, timedelta):
        return value
    return parse_duration(_str(value, key))


def _uri(value: Any, key: str) -> str:
    return parse_uri(value)


def _ws_protocol(value: Any, key: str) -> WsProtocol:
    try:
        return WsProtocol(_str(value, key))
    except ValueError as err:
        raise ConfigError(
            f"unknown variant {value!r} for `{key}`, expected `wss` or `ws`"
        ) from err


def _stage(value: Any, key: str) -> PipelineStage:
    try:
        return PipelineStage(_str(value, key))
    except ValueError as err:
        raise ConfigError(f"unknown variant {value!r} for `{key}`") from err


@dataclass
class ConfigOptsBuild:
    """Options for the build system."""

    target: Path | None = None
    release: bool = False
    dist: Path | None = None
    offline: bool = False
    frozen: bool = False
    locked: bool = False
    public_url: str | None = None
    no_default_features: bool = False
    all_features: bool = False
    features: str | None = None
    filehash: bool | None = None
    pattern_script: str | None = None
    inject_scripts: bool | None = None
    pattern_preload: str | None = None
    pattern_params: dict[str, str] | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "ConfigOptsBuild":
        data = _mapping(data, "build")
        return cls(
            target=_optional(data, "target", _path),
            release=_flag(data, "release"),
            dist=_optional(data, "dist", _path),
            offline=_flag(data, "offline"),
            frozen=_flag(data, "frozen"),
            locked=_flag(data, "locked"),
            public_url=_optional(data, "public_url", _str),
            no_default_features=_flag(data, "no_default_features"),
            all_features=_flag(data, "all_features"),
            features=_optional(data, "features", _str),
            filehash=_optional(data, "filehash", _bool),
            pattern_script=_optional(data, "pattern_script", _str),
            inject_scripts=_optional(data, "inject_scripts", _bool),
            pattern_preload=_optional(data, "pattern_preload", _str),
            pattern_params=_optional(data, "pattern_params", _str_map),
        )


@dataclass
class ConfigOptsWatch:
    """Options for the watch system."""

    watch: list[Path] | None = None
    ignore: list[Path] | None = None
    poll: bool = False
    poll_interval: timedelta | None = None
    enable_cooldown: bool = False

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "ConfigOptsWatch":
        data = _mapping(data, "watch")
        return cls(
            watch=_optional(data, "watch", _path_list),
            ignore=_optional(data, "ignore", _path_list),
            poll=_flag(data, "poll"),
            poll_interval=_optional(data, "poll_interval", _duration),
            enable_cooldown=_flag(data, "enable_cooldown"),
        )


@dataclass
class ConfigOptsServe:
    """Options for the serve system."""

    address: ipaddress.IPv4Address | ipaddress.IPv6Address | None = None
    port: int | None = None
    open: bool = False
    proxy_backend: str | None = None
    proxy_rewrite: str | None = None
    proxy_ws: bool = False
    proxy_insecure: bool = False
    no_autoreload: bool = False
    headers: dict[str, str] = field(default_factory=dict)
    no_error_reporting: bool = False
    no_spa: bool = False
    ws_protocol: WsProtocol | None = None
    tls_key_path: Path | None = None
    tls_cert_path: Path | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "ConfigOptsServe":
        data = _mapping(data, "serve")
        return cls(
            address=_optional(data, "address", _ip),
            port=_optional(data, "port", _port),
            open=_flag(data, "open"),
            proxy_backend=_optional(data, "proxy_backend", _uri),
            proxy_rewrite=_optional(data, "proxy_rewrite", _str),
            proxy_ws=_flag(data, "proxy_ws"),
            proxy_insecure=_flag(data, "proxy_insecure"),
            no_autoreload=_flag(data, "no_autoreload"),
            headers=_optional(data, "headers", _str_map) or {},
            no_error_reporting=_flag(data, "no_error_reporting"),
            no_spa=_flag(data, "no_spa"),
            ws_protocol=_optional(data, "ws_protocol", _ws_protocol),
            tls_key_path=_optional(data, "tls_key_path", _path),
            tls_cert_path=_optional(data, "tls_cert_path", _path),
        )


@dataclass
class ConfigOptsClean:
    """Options for the clean system."""

    dist: Path | None = None
    cargo: bool = False

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "ConfigOptsClean":
        data = _mapping(data, "clean")
        return cls(dist=_optional(data, "dist", _path), cargo=_flag(data, "cargo"))


@dataclass
class ConfigOptsTools:
    """Versions of the external tools to use."""

    sass: str | None = None
    wasm_bindgen: str | None = None
    wasm_opt: str | None = None
    tailwindcss: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "ConfigOptsTools":
        data = _mapping(data, "tools")
        return cls(
            sass=_optional(data, "sass", _str),
            wasm_bindgen=_optional(data, "wasm_bindgen", _str),
            wasm_opt=_optional(data, "wasm_opt", _str),
            tailwindcss=_optional(data, "tailwindcss", _str),
        )


@dataclass
class ConfigOptsProxy:
    """A proxy definition; only read from the config file."""

    backend: str
    rewrite: str | None = None
    ws: bool = False
    insecure: bool = False

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ConfigOptsProxy":
        data = _mapping(data, "proxy")
        return cls(
            backend=_required(data, "backend", _uri),
            rewrite=_optional(data, "rewrite", _str),
            ws=_flag(data, "ws"),
            insecure=_flag(data, "insecure"),
        )


@dataclass
class ConfigOptsHook:
    """A command to run at a given build stage."""

    stage: PipelineStage
    command: str
    command_arguments: list[str] = field(default_factory=list)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ConfigOptsHook":
        data = _mapping(data, "hooks")
        return cls(
            stage=_required(data, "stage", _stage),
            command=_required(data, "command", _str),
            command_arguments=_optional(data, "command_arguments", _str_list) or [],
        )