"""
Timeline data models.
These types flow from discovery → probing → composition → publishing/serving.
"""
from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class OutputType(str, Enum):
    PRIMARY = "primary"      # lossless concat of the source clips
    SECONDARY = "secondary"  # transcoded rendition of the primary track

    @property
    def extension(self) -> str:
        return OUTPUT_EXTENSIONS[self]

    @property
    def content_type(self) -> str:
        return OUTPUT_CONTENT_TYPES[self]


OUTPUT_EXTENSIONS: dict[OutputType, str] = {
    OutputType.PRIMARY:   ".mp3",
    OutputType.SECONDARY: ".webm",
}

OUTPUT_CONTENT_TYPES: dict[OutputType, str] = {
    OutputType.PRIMARY:   "audio/mpeg",
    OutputType.SECONDARY: "audio/webm",
}


class Mode(str, Enum):
    BUILD = "build"
    INTERACTIVE = "interactive"


class Clip(BaseModel):
    """One discovered audio clip and its fixed position on the timeline."""
    model_config = ConfigDict(frozen=True)

    identity: str                           # discovered path, used for de-duplication
    display_name: str                       # basename published in metadata
    duration_ms: int = Field(ge=0)
    start_offset_ms: int = Field(ge=0)

    @property
    def end_offset_ms(self) -> int:
        return self.start_offset_ms + self.duration_ms


class ClipMetadata(BaseModel):
    """
    Record handed back to the host for one clip.

    Serialized with the public names the generated module exposes:
    {"outputPaths": [...], "filename": ..., "startTime": ..., "duration": ...}
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    output_paths: list[str] = Field(alias="outputPaths")
    filename: str
    start_time: int = Field(alias="startTime")
    duration: int

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True)

    def to_module_payload(self) -> str:
        return self.model_dump_json(by_alias=True)


class CompositionOutput(BaseModel):
    """Artifacts produced by one composition run, keyed by output type."""
    working_dir: Path
    artifacts: dict[OutputType, Path] = Field(default_factory=dict)
    clip_count: int = 0
    total_duration_ms: int = 0


class ArtifactRef(BaseModel):
    """A working-directory artifact matched from an inbound request path."""
    model_config = ConfigDict(frozen=True)

    output_type: OutputType
    path: Path
    content_type: str
