# consolekit

Building blocks for a console that watches the tasks, resources and async
operations of an instrumented async runtime:

- `consolekit.stats`: `TaskStats`, `ResourceStats` and `AsyncOpStats` record
  wakes, waker clones and drops, self-wakes, poll counts, busy time and
  scheduled time. Each keeps a "dirty" flag (`is_unsent()` / `take_unsent()`)
  so that only changed entries need to be sent on each update, and each turns
  into an immutable snapshot with `to_proto(base_time)`. `TimeAnchor` converts
  monotonic nanosecond instants into `(seconds, nanos)` wall-clock timestamps.
- `consolekit.histogram`: `HdrHistogram`, a high dynamic range histogram that
  serializes to the uncompressed V2 HdrHistogram byte format, and `Histogram`,
  which clamps durations above its maximum and counts them as outliers.
- `consolekit.visitors`: `ResourceVisitor`, `TaskVisitor`, `FieldVisitor`,
  `AsyncOpVisitor`, `WakerVisitor`, `PollOpVisitor` and `StateUpdateVisitor`
  pull structured data out of span and event fields passed to their
  `record_*` methods.
- `consolekit.intern`: `Strings`, a small string interner handing out shared
  `InternedStr` handles; `retain_referenced()` drops handles nothing else uses.
- `consolekit.input`: `KeyEvent`, `KeyCode`, `KeyModifiers` and the predicates
  `should_quit` (`q`, `Ctrl-C`, `Ctrl-D`), `is_space`, `is_help_toggle` and
  `is_esc`.
- `consolekit.retention`: `parse_duration`, `format_duration`, `RetainFor` and
  `parse_retain_for`.
- `consolekit.config`: `Config`, `ViewOptions`, `ColorToggles`, `Palette` and
  `ConfigFile`, merged from `console.toml` files and the command line.
- `consolekit.cli`: the `consolekit` command.

## Installing

```
pip install .
```

## Command line

```
consolekit [TARGET_ADDR] [--log FILTER] [--log-dir DIR] [--retain-for DURATION]
           [--no-colors] [--lang LANG] [--ascii-only BOOL] [--colorterm {24bit,truecolor}]
           [--palette {8,16,256,all,off}]
           [--no-duration-colors BOOL] [--no-terminated-colors BOOL]
           [{gen-config,gen-completion}]
```

`--log`, `--lang` and `--colorterm` fall back to the `RUST_LOG`, `LANG` and
`COLORTERM` environment variables. `--no-colors` cannot be combined with
`--palette` or the per-element colour flags, and `--palette` cannot be combined
with `--colorterm`.

Configuration is read from `tokio-console/console.toml` in the user
configuration directory and then from `./console.toml` in the current
directory; values from the current directory win, and command-line arguments
win over both. Unknown keys or wrongly typed values in a config file are
reported as errors.

Without a subcommand, `consolekit` prints the resolved target address,
retention period, colour palette and whether UTF-8 output is used. When no
palette is chosen and true colour is not enabled, the palette is asked of
`tput colors`.

Print a configuration file holding the defaults, overridden by any arguments
given:

```
consolekit gen-config > console.toml
```

Print a completion script (bash, elvish, fish, powershell or zsh); the
scripts register completions for the command name `tokio-console`.
`--install` is not supported and reports an error:

```
consolekit gen-completion bash
```

`--log FILTER` turns on the command's own logging: a new file named after the
current UTC time is created in `--log-dir` (default `/tmp/tokio-console/logs`).
The filter is a comma-separated list of levels (`trace`, `debug`, `info`,
`warn`, `error`, `off`) and `target=level` directives.

`--retain-for` takes a sum of integer spans with suffixes `ns`, `us`, `ms`,
`s`, `m`, `h`, `d`, `w`, `M` (30.44 days) and `y` (365.25 days), together with
their longer spellings, for example `5days 2min 2s`. It also accepts `none`,
which keeps completed tasks forever. The default is `6s`.

## What this package does not do

It does not connect to a running process, receive instrumentation updates, or
draw an interactive terminal view of tasks and resources. The command resolves
and reports configuration; the statistics, visitors and input helpers are
library pieces for building such a console.

## Library use

```python
from consolekit.stats import TaskStats, TimeAnchor

anchor = TimeAnchor.now()
stats = TaskStats(poll_duration_max=1_000_000_000,
                  scheduled_duration_max=1_000_000_000,
                  created_at=anchor.mono)
stats.start_poll(anchor.mono + 10)
stats.end_poll(anchor.mono + 510)
snapshot = stats.to_proto(anchor)
print(snapshot.poll_stats.polls, snapshot.poll_stats.busy_time)  # 1 500
```

```python
from consolekit.retention import parse_duration, format_duration

format_duration(parse_duration("1s 500ms"))  # '1.5s'
```

## Tests

```
pip install ".[test]"
pytest
```