# trunkit

Layered configuration, build-stage hooks and output-directory tooling for
bundling web applications.

## Configuration layers

Configuration is gathered from three layers, each taking precedence over the
one before:

1. a `Trunk.toml` file in the working directory, or the file named by
   `--config` or the `TRUNK_CONFIG` environment variable; a missing file is
   simply an empty layer,
2. environment variables of the form `TRUNK_<SECTION>_<OPTION>`, with the
   prefixes `TRUNK_BUILD_`, `TRUNK_WATCH_`, `TRUNK_SERVE_`, `TRUNK_CLEAN_` and
   `TRUNK_TOOLS_` (for example `TRUNK_BUILD_RELEASE=true`),
3. command-line options.

Relative paths in the config file are taken relative to the file itself.
`[build].target`, `[watch].watch` and `[watch].ignore` entries must exist, as
they are resolved to canonical paths when the file is read.

When layers are merged, optional values from a higher layer replace those
below them. Boolean flags such as `release`, `offline`, `frozen`, `locked`,
`cargo`, `open`, `no_spa`, `no_autoreload` and `no_error_reporting` cannot be
switched off by a higher layer once a lower one has set them. The `proxy` and
`hooks` lists are taken whole from the highest layer that has them.

## Installation

```
pip install .
```

## Command line

Show the configuration assembled from the config file and the environment:

```
trunkit config show
```

Remove the output directory (default `dist`); with `--cargo`, also run
`cargo clean`, which fails with the command's error output if it does not
succeed:

```
trunkit clean
trunkit clean --dist public --cargo
```

Global options: `--config PATH`, `-v/--verbose` (repeat for more detail) and
`-q/--quiet`, which cannot be combined with `--verbose`. Errors are printed
with their chain of causes and give exit status 1.

## Library use

```python
from trunkit.layers import ConfigOpts
from trunkit.options import ConfigOptsBuild

# Needs an index.html in the working directory (or a configured target).
cfg = ConfigOpts.rtc_build(ConfigOptsBuild(release=True), None)
print(cfg.final_dist, cfg.staging_dist, cfg.public_url)
```

Resolving a build config creates the dist directory if it is missing.

Modules:

- `trunkit.options` — option models for each config section
  (`ConfigOptsBuild`, `ConfigOptsWatch`, `ConfigOptsServe`, `ConfigOptsClean`,
  `ConfigOptsTools`, `ConfigOptsProxy`, `ConfigOptsHook`), each with a
  `from_mapping` constructor that raises `ConfigError` on bad data; the enums
  `PipelineStage`, `WsProtocol` and `CrossOrigin` (with `CrossOrigin.parse`,
  raising `CrossOriginParseError`); `parse_duration` for values such as `5s`,
  `100ms` or `1m 30s`; and `parse_uri`.
- `trunkit.layers` — `ConfigOpts`, which reads layers (`from_file`,
  `from_env`), merges them (`merge`) and resolves them into runtime configs
  (`rtc_build`, `rtc_watch`, `rtc_serve`, `rtc_clean`, `full`).
- `trunkit.runtime` — the resolved configs `RtcBuild`, `RtcWatch`, `RtcServe`
  and `RtcClean`, the cargo `Features` selection, `tls_config` (loads an
  `ssl.SSLContext` when both key and certificate are given) and
  `absolute_path`. Defaults: target `index.html`, public URL `/`, port 8080,
  address 127.0.0.1, poll interval 5 seconds.
- `trunkit.hooks` — `spawn_hooks` starts the hook commands configured for a
  pipeline stage, each with `TRUNK_PROFILE`, `TRUNK_HTML_FILE`,
  `TRUNK_SOURCE_DIR`, `TRUNK_STAGING_DIR`, `TRUNK_DIST_DIR` and
  `TRUNK_PUBLIC_URL` set, and returns one future per hook; `wait_hooks` waits
  for them and raises `HookError` on the first failure.
- `trunkit.common` — `parse_public_url`, filesystem helpers
  (`copy_dir_recursive`, `remove_dir_all`, `path_exists`, `path_exists_and`,
  `is_executable`, `strip_prefix`) and `run_command`, which raises
  `CommandError` when a command cannot start or exits with a bad status.

## What it does not do

The package resolves configuration and manages the output directory, but it
does not compile or bundle anything: there is no `build`, `watch` or `serve`
command, no asset pipeline or HTML processing, no file watcher, no development
server or proxy, and no downloading of external tools. The watch and serve
runtime configs are produced but nothing here acts on them.

## Running the tests

```
pip install .[test]
pytest
```