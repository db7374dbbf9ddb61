"""
Central configuration for the Audio Timeline Compositor.
All defaults are overridable via environment variables.

Two layers:
  - PluginOptions: user-facing options (env-derived defaults), validated once.
  - CompositorConfig: immutable, fully resolved config produced by
    resolve_config() when the host reports its root/base/mode. Every component
    receives it explicitly; nothing reads paths from module globals.
"""
from __future__ import annotations

import os
import re
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.timeline.models import Mode, OutputType
from src.utils.ffmpeg import to_posix


def _opt(key: str, default: str) -> str:
    return os.getenv(key, default)


def _bool(key: str, default: bool) -> bool:
    val = os.getenv(key)
    if val is None:
        return default
    return val.lower() in ("1", "true", "yes")


def _float(key: str, default: float) -> float:
    return float(os.getenv(key, str(default)))


def _list(key: str, default: str) -> list[str]:
    return [item.strip() for item in os.getenv(key, default).split(",") if item.strip()]


_OUTPUT_TYPE_ALIASES = {
    "primary": OutputType.PRIMARY,
    "mp3": OutputType.PRIMARY,
    ".mp3": OutputType.PRIMARY,
    "secondary": OutputType.SECONDARY,
    "webm": OutputType.SECONDARY,
    ".webm": OutputType.SECONDARY,
}


def parse_output_type(value: str | OutputType) -> OutputType:
    if isinstance(value, OutputType):
        return value
    try:
        return _OUTPUT_TYPE_ALIASES[value.strip().lower()]
    except KeyError:
        raise ValueError(
            f"Unknown output type '{value}'. Valid types: primary, secondary"
        ) from None


class PluginOptions(BaseModel):
    """
    User options. Unset fields fall back to environment variables read at
    construction time, then to the built-in defaults.
    """
    model_config = ConfigDict(validate_default=True)

    # Regex matched against discovered module ids / file paths.
    file_pattern: str = Field(default_factory=lambda: _opt("AUDIO_FILE_PATTERN", r"\.mp3$"))
    # 'primary' (.mp3 stream copy) and/or 'secondary' (.webm rendition).
    output_types: list[OutputType] = Field(
        default_factory=lambda: _list("AUDIO_OUTPUT_TYPES", "primary,secondary")
    )
    # Filename stem shared by every artifact.
    filename: str = Field(default_factory=lambda: _opt("AUDIO_FILENAME", "merged-audio"))
    # Working and published directories, relative to the project root.
    temp_dir: str = Field(default_factory=lambda: _opt("AUDIO_TEMP_DIR", "temp/audio"))
    output_dir: str = Field(default_factory=lambda: _opt("AUDIO_OUTPUT_DIR", "dist/audio"))
    # Web root of the build output; published URLs are relative to it.
    public_dir: str = Field(default_factory=lambda: _opt("AUDIO_PUBLIC_DIR", "dist"))
    secondary_codec: str = Field(default_factory=lambda: _opt("AUDIO_SECONDARY_CODEC", "libvorbis"))
    ffmpeg_path: str = Field(default_factory=lambda: _opt("FFMPEG_PATH", "ffmpeg"))
    ffmpeg_timeout_sec: float = Field(default_factory=lambda: _float("FFMPEG_TIMEOUT_SEC", 600.0))
    # Quiet period before a dev-session re-composition fires.
    debounce_sec: float = Field(default_factory=lambda: _float("DEBOUNCE_SEC", 0.5), ge=0)

    @field_validator("output_types", mode="before")
    @classmethod
    def _coerce_output_types(cls, value):
        if isinstance(value, str):
            value = value.split(",")
        types: list[OutputType] = []
        for item in value:
            ot = parse_output_type(item)
            if ot not in types:
                types.append(ot)
        return types

    @field_validator("file_pattern")
    @classmethod
    def _check_pattern(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as exc:
            raise ValueError(f"invalid file_pattern: {exc}") from None
        return value

    @field_validator("filename")
    @classmethod
    def _check_filename(cls, value: str) -> str:
        if not value or "/" in value or "\\" in value:
            raise ValueError(f"filename must be a bare stem, got '{value}'")
        return value


class CompositorConfig(BaseModel):
    """Resolved configuration. Immutable for the lifetime of a plugin instance."""
    model_config = ConfigDict(frozen=True)

    root: Path
    base: str = "/"
    mode: Mode = Mode.BUILD
    file_pattern: str = r"\.mp3$"
    output_types: tuple[OutputType, ...] = (OutputType.PRIMARY, OutputType.SECONDARY)
    filename: str = "merged-audio"
    working_dir: Path
    published_dir: Path
    public_dir: Path
    secondary_codec: str = "libvorbis"
    ffmpeg_path: str = "ffmpeg"
    ffmpeg_timeout_sec: float = 600.0
    debounce_sec: float = 0.5

    # -- discovery -----------------------------------------------------------

    def matches(self, module_id: str) -> bool:
        """True for clip paths; the compositor's own artifacts never match."""
        if re.search(self.file_pattern, module_id) is None:
            return False
        return not self.is_artifact_path(module_id)

    def is_artifact_path(self, path: str | Path) -> bool:
        p = Path(to_posix(str(path)))
        if not p.is_absolute():
            p = self.root / p
        return self.working_dir in p.parents or self.published_dir in p.parents

    def requests(self, output_type: OutputType) -> bool:
        return output_type in self.output_types

    # -- filesystem paths ----------------------------------------------------

    def artifact_filename(self, output_type: OutputType) -> str:
        return f"{self.filename}{output_type.extension}"

    def working_path(self, output_type: OutputType) -> Path:
        return self.working_dir / self.artifact_filename(output_type)

    def published_path(self, output_type: OutputType) -> Path:
        return self.published_dir / self.artifact_filename(output_type)

    @property
    def manifest_path(self) -> Path:
        return self.working_dir / "concat-list.txt"

    # -- public URLs ---------------------------------------------------------

    def working_url(self, output_type: OutputType) -> str:
        return self._url_for(self.working_dir, self.root, output_type)

    def published_url(self, output_type: OutputType) -> str:
        anchor = self.public_dir if _is_within(self.published_dir, self.public_dir) else self.root
        return self._url_for(self.published_dir, anchor, output_type)

    def output_urls(self) -> list[str]:
        """URLs the metadata record points at for the current mode, in output-type order."""
        if self.mode is Mode.INTERACTIVE:
            return [self.working_url(ot) for ot in self.output_types]
        return [self.published_url(ot) for ot in self.output_types]

    def _url_for(self, directory: Path, anchor: Path, output_type: OutputType) -> str:
        if not _is_within(directory, anchor):
            # Outside the served tree: expose the absolute filesystem path.
            return to_posix(str(directory / self.artifact_filename(output_type)))
        rel = to_posix(os.path.relpath(directory, anchor))
        parts = [self.base, "" if rel == "." else rel, self.artifact_filename(output_type)]
        return "/" + "/".join(p.strip("/") for p in parts if p.strip("/"))


def _is_within(path: Path, parent: Path) -> bool:
    try:
        path.relative_to(parent)
    except ValueError:
        return False
    return True


def mode_for_command(command: str) -> Mode:
    """Host commands other than 'build' (serve, dev, preview) are interactive."""
    return Mode.BUILD if command == "build" else Mode.INTERACTIVE


def resolve_config(
    options: PluginOptions,
    root: str | Path,
    base: str = "/",
    mode: Mode | str = Mode.BUILD,
) -> CompositorConfig:
    """Resolve options against the host's project root, base path and run mode."""
    root_path = Path(root).resolve()
    return CompositorConfig(
        root=root_path,
        base=base or "/",
        mode=Mode(mode),
        file_pattern=options.file_pattern,
        output_types=tuple(options.output_types),
        filename=options.filename,
        working_dir=(root_path / options.temp_dir).resolve(),
        published_dir=(root_path / options.output_dir).resolve(),
        public_dir=(root_path / options.public_dir).resolve(),
        secondary_codec=options.secondary_codec,
        ffmpeg_path=options.ffmpeg_path,
        ffmpeg_timeout_sec=options.ffmpeg_timeout_sec,
        debounce_sec=options.debounce_sec,
    )


class _Config:
    """
    Dynamic config accessor: reads env vars at call time.
    Use this in request handlers and the app lifespan so tests can override
    env vars per-test.
    Usage: from src.config import config; config.AUDIO_SOURCE_DIR
    """
    _ENV_MAP = {
        "AUDIO_SOURCE_DIR": ("AUDIO_SOURCE_DIR", "."),
        "AUDIO_PROJECT_ROOT": ("AUDIO_PROJECT_ROOT", "."),
        "AUDIO_BASE_PATH": ("AUDIO_BASE_PATH", "/"),
        "WATCH_POLL_INTERVAL_SEC": ("WATCH_POLL_INTERVAL_SEC", "1.0"),
        "WATCH_STABLE_TIME_SEC": ("WATCH_STABLE_TIME_SEC", "0.5"),
    }

    def __getattr__(self, name: str):
        if name not in self._ENV_MAP:
            raise AttributeError(f"Unknown config key: {name}")
        env_key, default = self._ENV_MAP[name]
        return os.getenv(env_key, default)


config = _Config()


def watch_enabled() -> bool:
    """Read at call time so tests can toggle the standalone watcher per test."""
    return _bool("WATCH_ENABLED", True)
