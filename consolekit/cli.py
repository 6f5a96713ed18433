"""Command-line interface: argument parsing, config loading, logging setup and completions."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from collections.abc import Sequence
from datetime import datetime, timezone
from pathlib import Path

from consolekit.config import (
    ColorToggles,
    Config,
    ConfigError,
    ConfigPath,
    Palette,
    ViewOptions,
    default_log_directory,
    load_config_file,
    parse_true_color,
)
from consolekit.retention import format_duration, parse_retain_for

PROG = "tokio-console"
SHELLS = ("bash", "elvish", "fish", "powershell", "zsh")
_PALETTES = ("8", "16", "256", "all", "off")
_LONG_FLAGS = (
    "--log",
    "--log-dir",
    "--retain-for",
    "--no-colors",
    "--lang",
    "--ascii-only",
    "--colorterm",
    "--palette",
    "--no-duration-colors",
    "--no-terminated-colors",
    "--help",
)
_SUBCOMMANDS = ("gen-config", "gen-completion")

_TRACE = 5
_OFF = logging.CRITICAL + 10
_LEVELS = {
    "trace": _TRACE,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
    "off": _OFF,
}


def _parse_bool(text: str) -> bool:
    value = text.strip().lower()
    if value == "true":
        return True
    if value == "false":
        return False
    raise ValueError(f"invalid boolean {text!r}")


def _parse_target(text: str) -> str:
    if not text or any(char.isspace() for char in text):
        raise ValueError(f"invalid target address {text!r}")
    return text


def _env(name: str) -> str | None:
    value = os.environ.get(name)
    return value if value else None


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the console's command line."""
    parser = argparse.ArgumentParser(
        prog=PROG,
        description="The console for instrumented async applications.",
    )
    parser.add_argument(
        "target_addr",
        nargs="?",
        type=_parse_target,
        help="address of a console-enabled process to connect to "
        "[default: http://127.0.0.1:6669]",
    )
    parser.add_argument(
        "--log",
        dest="env_filter",
        help="log level filter for the console's internal diagnostics [env: RUST_LOG] "
        "[default: off]",
    )
    parser.add_argument(
        "--log-dir",
        dest="log_directory",
        type=Path,
        help="directory to write the console's internal logs to "
        "[default: /tmp/tokio-console/logs]",
    )
    parser.add_argument(
        "--retain-for",
        type=parse_retain_for,
        help="how long to keep displaying completed tasks and dropped resources, "
        "or 'none' to keep them forever [default: 6s]",
    )
    parser.add_argument(
        "--no-colors", action="store_true", help="disable ANSI colors entirely"
    )
    parser.add_argument(
        "--lang", help="override the terminal's default language [env: LANG]"
    )
    parser.add_argument(
        "--ascii-only",
        type=_parse_bool,
        metavar="BOOL",
        help="explicitly use only ASCII characters",
    )
    parser.add_argument(
        "--colorterm",
        choices=("24bit", "truecolor"),
        help="override the COLORTERM environment variable [env: COLORTERM]",
    )
    parser.add_argument(
        "--palette",
        choices=_PALETTES,
        help="explicitly set which color palette to use",
    )
    parser.add_argument(
        "--no-duration-colors",
        type=_parse_bool,
        metavar="BOOL",
        help="disable color-coding for duration units",
    )
    parser.add_argument(
        "--no-terminated-colors",
        type=_parse_bool,
        metavar="BOOL",
        help="disable color-coding for terminated tasks",
    )

    commands = parser.add_subparsers(dest="command", metavar="COMMAND")
    commands.add_parser(
        "gen-config",
        help="print a console.toml with the defaults, overridden by the given arguments",
    )
    completion = commands.add_parser("gen-completion", help="generate shell completions")
    completion.add_argument("--install", action="store_true")
    completion.add_argument("shell", choices=SHELLS)
    return parser


def parse_args(argv: Sequence[str] | None = None) -> Config:
    """Parse command-line arguments (and their environment fallbacks) into a ``Config``."""
    parser = build_parser()
    ns = parser.parse_args(argv)

    if ns.no_colors:
        for value, flag in (
            (ns.palette, "--palette"),
            (ns.no_duration_colors, "--no-duration-colors"),
            (ns.no_terminated_colors, "--no-terminated-colors"),
        ):
            if value is not None:
                parser.error(f"argument {flag}: not allowed with argument --no-colors")
    if ns.palette is not None and ns.colorterm is not None:
        parser.error("argument --palette: not allowed with argument --colorterm")

    colorterm = ns.colorterm if ns.colorterm is not None else _env("COLORTERM")
    truecolor = None if colorterm is None else parse_true_color(colorterm)

    if ns.command == "gen-config":
        subcmd = ("gen-config",)
    elif ns.command == "gen-completion":
        subcmd = ("gen-completion", ns.install, ns.shell)
    else:
        subcmd = None

    return Config(
        target_addr=ns.target_addr,
        env_filter=ns.env_filter if ns.env_filter is not None else _env("RUST_LOG"),
        log_directory=ns.log_directory,
        retain_for=ns.retain_for,
        view_options=ViewOptions(
            no_colors=ns.no_colors,
            lang=ns.lang if ns.lang is not None else _env("LANG"),
            ascii_only=ns.ascii_only,
            truecolor=truecolor,
            palette=None if ns.palette is None else Palette.parse(ns.palette),
            toggles=ColorToggles(
                durations=ns.no_duration_colors,
                terminated=ns.no_terminated_colors,
            ),
        ),
        subcmd=subcmd,
    )


def load_config(argv: Sequence[str] | None = None) -> Config:
    """Merge the home and current-directory config files, then the command line, in that order."""
    base: Config | None = None
    for location in (ConfigPath.HOME, ConfigPath.CURRENT):
        config_file = load_config_file(location)
        if config_file is None:
            continue
        loaded = Config.from_config_file(config_file)
        base = loaded if base is None else base.merge_with(loaded)
    command_line = parse_args(argv)
    return command_line if base is None else base.merge_with(command_line)


def _parse_filter(text: str) -> tuple[int, dict[str, int]]:
    default = logging.ERROR
    targets: dict[str, int] = {}
    for raw in text.split(","):
        directive = raw.strip()
        if not directive:
            continue
        if "[" in directive or "]" in directive:
            raise ConfigError(f"failed to parse log filter {text!r}: span filters are not supported")
        if directive.lower() in _LEVELS:
            default = _LEVELS[directive.lower()]
            continue
        target, sep, level = directive.partition("=")
        target = target.strip()
        if not target:
            raise ConfigError(f"failed to parse log filter {text!r}")
        if sep:
            level_value = _LEVELS.get(level.strip().lower())
            if level_value is None:
                raise ConfigError(f"failed to parse log filter {text!r}: invalid level {level!r}")
        else:
            level_value = _TRACE
        targets[target.replace("::", ".")] = level_value
    return default, targets


def trace_init(config: Config) -> Path | None:
    """Start writing the console's own logs to a new file; return its path, or ``None`` if disabled."""
    if config.env_filter is None:
        return None
    default_level, targets = _parse_filter(config.env_filter)

    directory = config.log_directory or default_log_directory()
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ConfigError(f"creating log directory '{directory}': {exc}") from exc
    if not directory.is_dir():
        raise ConfigError(f"log directory path '{directory}' is not a directory")

    stamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    path = directory / f"{stamp}.log".replace(":", "")
    try:
        stream = open(path, "x", encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"creating log file '{path}': {exc}") from exc

    handler = logging.StreamHandler(stream)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel(default_level)
    for target, level in targets.items():
        logging.getLogger(target).setLevel(level)
    return path


def _bash_script(words: list[str]) -> str:
    return (
        "_tokio_console() {\n"
        '    local cur="${COMP_WORDS[COMP_CWORD]}"\n'
        f'    COMPREPLY=( $(compgen -W "{" ".join(words)}" -- "$cur") )\n'
        "}\n"
        f"complete -F _tokio_console {PROG}\n"
    )


def _zsh_script(words: list[str]) -> str:
    return (
        f"#compdef {PROG}\n"
        f"_{PROG}() {{\n"
        f"    compadd -- {' '.join(words)}\n"
        "}\n"
        f'_{PROG} "$@"\n'
    )


def _fish_script(words: list[str]) -> str:
    lines = []
    for word in words:
        if word.startswith("--"):
            lines.append(f"complete -c {PROG} -l {word[2:]}")
        else:
            lines.append(f"complete -c {PROG} -f -a {word}")
    return "\n".join(lines) + "\n"


def _powershell_script(words: list[str]) -> str:
    quoted = ", ".join(f"'{word}'" for word in words)
    return (
        f"Register-ArgumentCompleter -Native -CommandName '{PROG}' -ScriptBlock {{\n"
        "    param($wordToComplete, $commandAst, $cursorPosition)\n"
        f"    @({quoted}) | Where-Object {{ $_ -like \"$wordToComplete*\" }} | ForEach-Object {{\n"
        "        [System.Management.Automation.CompletionResult]::new($_, $_, 'ParameterValue', $_)\n"
        "    }\n"
        "}\n"
    )


def _elvish_script(words: list[str]) -> str:
    quoted = " ".join(f"'{word}'" for word in words)
    return (
        f"set edit:completion:arg-completer[{PROG}] = {{|@words|\n"
        f"    put {quoted}\n"
        "}\n"
    )


_GENERATORS = {
    "bash": _bash_script,
    "elvish": _elvish_script,
    "fish": _fish_script,
    "powershell": _powershell_script,
    "zsh": _zsh_script,
}


def gen_completion(install: bool, shell: str) -> None:
    """Write a completion script for ``shell`` to standard output."""
    if install:
        raise ConfigError(
            f"Automatically installing completion scripts is not currently supported on {shell}"
        )
    generator = _GENERATORS.get(shell)
    if generator is None:
        raise ConfigError(f"unsupported shell {shell!r}; expected one of {', '.join(SHELLS)}")
    sys.stdout.write(generator([*_LONG_FLAGS, *_SUBCOMMANDS]))


def main(argv: Sequence[str] | None = None) -> int:
    try:
        config = load_config(argv)
        trace_init(config)
        subcmd = config.subcmd
        if subcmd is not None and subcmd[0] == "gen-config":
            print(config.gen_config_file())
            return 0
        if subcmd is not None and subcmd[0] == "gen-completion":
            gen_completion(subcmd[1], subcmd[2])
            return 0
    except ConfigError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    retain = config.effective_retain_for()
    print(f"target: {config.effective_target_addr()}")
    print(f"retain for: {'forever' if retain is None else format_duration(retain)}")
    print(f"palette: {config.view_options.determine_palette().value}")
    print(f"utf-8: {'yes' if config.view_options.is_utf8() else 'no'}")
    return 0