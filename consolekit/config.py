"""Console configuration: view options, config files and their merging."""

from __future__ import annotations

import enum
import logging
import re
import subprocess
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

import platformdirs
import tomli_w

from consolekit.retention import DurationError, RetainFor, parse_retain_for

logger = logging.getLogger(__name__)

_DEFAULT_TARGET_ADDR = "http://127.0.0.1:6669"
_SCHEME = re.compile(r"[A-Za-z][A-Za-z0-9+.\-]*")


class ConfigError(Exception):
    """Raised when configuration cannot be read or is invalid."""


class Palette(enum.Enum):
    """The colour palette the terminal supports."""

    NO_COLORS = "off"
    ANSI8 = "8"
    ANSI16 = "16"
    ANSI256 = "256"
    ALL = "all"

    @classmethod
    def parse(cls, text: str) -> Palette:
        """Parse a palette name or colour count (``8``, ``16``, ``256``, ``all``, ``off``)."""
        key = text.strip().lower()
        for palette in cls:
            if palette.value == key:
                return palette
        raise ValueError(f"invalid color palette {text!r}")


@dataclass(frozen=True)
class ColorToggles:
    """Per-element colour toggles, as given by the ``--no-*-colors`` flags."""

    durations: bool | None = None
    terminated: bool | None = None

    def color_durations(self) -> bool:
        return True if self.durations is None else not self.durations

    def color_terminated(self) -> bool:
        return True if self.durations is None else not self.durations


@dataclass(frozen=True)
class ViewOptions:
    """Options that control how the console is drawn."""

    no_colors: bool = False
    lang: str | None = None
    ascii_only: bool | None = None
    truecolor: bool | None = None
    palette: Palette | None = None
    toggles: ColorToggles = field(default_factory=ColorToggles)

    @classmethod
    def default(cls) -> ViewOptions:
        return cls(
            no_colors=False,
            lang="en_us.UTF-8",
            ascii_only=False,
            truecolor=True,
            palette=Palette.ALL,
            toggles=ColorToggles(durations=True, terminated=True),
        )

    def is_utf8(self) -> bool:
        if self.ascii_only:
            return False
        return (self.lang or "").endswith("UTF-8")

    def determine_palette(self) -> Palette:
        """Pick a palette from the options, then ``COLORTERM``, then ``tput colors``."""
        if self.no_colors:
            logger.debug("colors explicitly disabled by `--no-colors`")
            return Palette.NO_COLORS
        if self.palette is not None:
            logger.debug("colors selected via `--palette`: %s", self.palette)
            return self.palette
        if self.truecolor:
            logger.debug("millions of colors enabled via `COLORTERM=truecolor`")
            return Palette.ALL
        try:
            output = subprocess.run(["tput", "colors"], capture_output=True, check=False)
        except OSError as exc:
            logger.debug("checking `tput colors` failed: %s", exc)
            return Palette.NO_COLORS
        try:
            text = output.stdout.decode("utf-8")
        except UnicodeDecodeError as exc:
            logger.warning("`tput colors` stdout was not utf-8: %s", exc)
            return Palette.NO_COLORS
        try:
            return Palette.parse(text)
        except ValueError:
            logger.warning("invalid color palette from `tput colors`: %r", text)
            return Palette.NO_COLORS

    def merge_with(self, command_line: ViewOptions) -> ViewOptions:
        """Overlay ``command_line`` on these options."""
        return ViewOptions(
            no_colors=command_line.no_colors or self.no_colors,
            lang=_first(command_line.lang, self.lang),
            ascii_only=_first(command_line.ascii_only, self.ascii_only),
            truecolor=_first(command_line.truecolor, self.truecolor),
            palette=_first(command_line.palette, self.palette),
            toggles=ColorToggles(
                durations=_first(command_line.toggles.durations, self.toggles.durations),
                terminated=_first(command_line.toggles.terminated, self.toggles.terminated),
            ),
        )


def _first(preferred: Any, fallback: Any) -> Any:
    return fallback if preferred is None else preferred


@dataclass(frozen=True)
class _CharsetConfig:
    lang: str | None = None
    ascii_only: bool | None = None


@dataclass(frozen=True)
class _ColorsConfig:
    enabled: bool | None = None
    truecolor: bool | None = None
    palette: Palette | None = None
    enable: ColorToggles | None = None


def _check_keys(table: dict[str, Any], allowed: tuple[str, ...], where: str) -> None:
    for key in table:
        if key not in allowed:
            expected = ", ".join(f"`{name}`" for name in allowed)
            raise ConfigError(f"unknown field `{where}{key}`, expected one of {expected}")


def _get(table: dict[str, Any], key: str, kind: type, where: str) -> Any:
    value = table.get(key)
    if value is not None and not isinstance(value, kind):
        raise ConfigError(f"invalid type for `{where}{key}`: expected {kind.__name__}")
    return value


def _drop_none(table: dict[str, Any]) -> dict[str, Any]:
    return {
        key: _drop_none(value) if isinstance(value, dict) else value
        for key, value in table.items()
        if value is not None
    }


@dataclass(frozen=True)
class ConfigFile:
    """The contents of a ``console.toml`` file."""

    default_target_addr: str | None = None
    log: str | None = None
    log_directory: Path | None = None
    retention: RetainFor | None = None
    charset: _CharsetConfig | None = None
    colors: _ColorsConfig | None = None

    @classmethod
    def from_toml(cls, text: str) -> ConfigFile:
        try:
            data = tomllib.loads(text)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(str(exc)) from exc
        _check_keys(
            data,
            ("default_target_addr", "log", "log_directory", "retention", "charset", "colors"),
            "",
        )
        log_directory = _get(data, "log_directory", str, "")
        retention_text = _get(data, "retention", str, "")
        retention = None
        if retention_text is not None:
            try:
                retention = RetainFor(None) if retention_text == "" else parse_retain_for(retention_text)
            except DurationError as exc:
                raise ConfigError(f"invalid retention {retention_text!r}: {exc}") from exc

        charset = None
        charset_table = _get(data, "charset", dict, "")
        if charset_table is not None:
            _check_keys(charset_table, ("lang", "ascii_only"), "charset.")
            charset = _CharsetConfig(
                lang=_get(charset_table, "lang", str, "charset."),
                ascii_only=_get(charset_table, "ascii_only", bool, "charset."),
            )

        colors = None
        colors_table = _get(data, "colors", dict, "")
        if colors_table is not None:
            _check_keys(colors_table, ("enabled", "truecolor", "palette", "enable"), "colors.")
            palette_text = _get(colors_table, "palette", str, "colors.")
            try:
                palette = None if palette_text is None else Palette.parse(palette_text)
            except ValueError as exc:
                raise ConfigError(str(exc)) from exc
            enable = None
            enable_table = _get(colors_table, "enable", dict, "colors.")
            if enable_table is not None:
                _check_keys(enable_table, ("durations", "terminated"), "colors.enable.")
                enable = ColorToggles(
                    durations=_get(enable_table, "durations", bool, "colors.enable."),
                    terminated=_get(enable_table, "terminated", bool, "colors.enable."),
                )
            colors = _ColorsConfig(
                enabled=_get(colors_table, "enabled", bool, "colors."),
                truecolor=_get(colors_table, "truecolor", bool, "colors."),
                palette=palette,
                enable=enable,
            )

        return cls(
            default_target_addr=_get(data, "default_target_addr", str, ""),
            log=_get(data, "log", str, ""),
            log_directory=None if log_directory is None else Path(log_directory),
            retention=retention,
            charset=charset,
            colors=colors,
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the file's contents as TOML-ready data, leaving out unset values."""
        charset = None
        if self.charset is not None:
            charset = {"lang": self.charset.lang, "ascii_only": self.charset.ascii_only}
        colors = None
        if self.colors is not None:
            enable = None
            if self.colors.enable is not None:
                enable = {
                    "durations": self.colors.enable.durations,
                    "terminated": self.colors.enable.terminated,
                }
            colors = {
                "enabled": self.colors.enabled,
                "truecolor": self.colors.truecolor,
                "palette": None if self.colors.palette is None else self.colors.palette.value,
                "enable": enable,
            }
        return _drop_none(
            {
                "default_target_addr": self.default_target_addr,
                "log": self.log,
                "log_directory": None if self.log_directory is None else str(self.log_directory),
                "retention": None if self.retention is None else str(self.retention),
                "charset": charset,
                "colors": colors,
            }
        )

    def to_toml(self) -> str:
        return tomli_w.dumps(self.to_dict())


def _parse_target_addr(addr: str) -> str:
    error = ConfigError(f"failed to parse target address {addr!r} as URI")
    if not addr or any(char.isspace() or not char.isprintable() for char in addr):
        raise error
    if "://" in addr:
        try:
            parts = urlsplit(addr)
            parts.port
        except ValueError as exc:
            raise error from exc
        if not _SCHEME.fullmatch(parts.scheme) or not parts.netloc:
            raise error
    return addr


@dataclass(frozen=True)
class Config:
    """The console's configuration; unset values are ``None``."""

    target_addr: str | None = None
    env_filter: str | None = None
    log_directory: Path | None = None
    retain_for: RetainFor | None = None
    view_options: ViewOptions = field(default_factory=ViewOptions)
    subcmd: Any = None

    @classmethod
    def default(cls) -> Config:
        return cls(
            target_addr=default_target_addr(),
            env_filter="off",
            log_directory=default_log_directory(),
            retain_for=RetainFor(),
            view_options=ViewOptions.default(),
            subcmd=None,
        )

    def merge_with(self, other: Config) -> Config:
        """Overlay ``other`` on this configuration."""
        return Config(
            target_addr=_first(other.target_addr, self.target_addr),
            env_filter=_first(other.env_filter, self.env_filter),
            log_directory=_first(other.log_directory, self.log_directory),
            retain_for=_first(other.retain_for, self.retain_for),
            view_options=self.view_options.merge_with(other.view_options),
            subcmd=_first(other.subcmd, self.subcmd),
        )

    def effective_retain_for(self) -> int | None:
        """The retention period in nanoseconds, or ``None`` to retain forever."""
        return (self.retain_for or RetainFor()).duration

    def effective_target_addr(self) -> str:
        return self.target_addr if self.target_addr is not None else default_target_addr()

    def to_config_file(self) -> ConfigFile:
        view = self.view_options
        return ConfigFile(
            default_target_addr=self.target_addr,
            log=self.env_filter,
            log_directory=self.log_directory,
            retention=self.retain_for,
            charset=_CharsetConfig(lang=view.lang, ascii_only=view.ascii_only),
            colors=_ColorsConfig(
                enabled=not view.no_colors,
                truecolor=view.truecolor,
                palette=view.palette,
                enable=view.toggles,
            ),
        )

    def gen_config_file(self) -> str:
        """Render the defaults, overridden by this configuration, as TOML."""
        return Config.default().merge_with(self).to_config_file().to_toml()

    @classmethod
    def from_config_file(cls, config_file: ConfigFile) -> Config:
        target = config_file.default_target_addr
        if target is not None:
            target = _parse_target_addr(target)
        env_filter = None if config_file.log == "off" else config_file.log
        charset = config_file.charset or _CharsetConfig()
        colors = config_file.colors
        no_colors = colors is not None and colors.enabled is not None and not colors.enabled
        enable = colors.enable if colors is not None else None
        return cls(
            target_addr=target,
            env_filter=env_filter,
            log_directory=config_file.log_directory,
            retain_for=config_file.retention,
            view_options=ViewOptions(
                no_colors=no_colors,
                lang=charset.lang,
                ascii_only=charset.ascii_only,
                truecolor=colors.truecolor if colors is not None else None,
                palette=colors.palette if colors is not None else None,
                toggles=ColorToggles(
                    durations=None if enable is None else enable.color_durations(),
                    terminated=None if enable is None else enable.color_terminated(),
                ),
            ),
            subcmd=None,
        )


class ConfigPath(enum.Enum):
    """Where a config file is looked for."""

    HOME = "home"
    CURRENT = "current"

    def into_path(self) -> Path | None:
        if self is ConfigPath.HOME:
            base = platformdirs.user_config_dir()
            if not base:
                return None
            return Path(base) / "tokio-console" / "console.toml"
        return Path("./console.toml")


def load_config_file(config_path: ConfigPath) -> ConfigFile | None:
    """Read the config file at ``config_path``; ``None`` if it does not exist or is unreadable."""
    path = config_path.into_path()
    if path is None:
        return None
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError:
        return None
    try:
        return ConfigFile.from_toml(raw)
    except ConfigError as exc:
        raise ConfigError(f"failed to parse {path}: {exc}") from exc


def parse_true_color(text: str) -> bool:
    """``truecolor`` or ``24bit`` (any case) enable 24-bit colour."""
    value = text.strip().lower()
    return value in ("truecolor", "24bit")


def default_target_addr() -> str:
    return _DEFAULT_TARGET_ADDR


def default_log_directory() -> Path:
    return Path("/", "tmp", "tokio-console", "logs")