"""Models describing which collection an ingestion run targets."""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import Field

from vingest.models.base import VingestBaseModel
from vingest.models.video import SourceType


class ChannelSource(VingestBaseModel):
    """Channel addressed by handle, legacy username, channel ID or free-text name."""

    kind: Literal["channel"] = "channel"
    identifier: str = Field(min_length=1)

    @property
    def source_type(self) -> SourceType:
        return SourceType.CHANNEL

    @property
    def description(self) -> str:
        return f"channel: {self.identifier}"


class PlaylistSource(VingestBaseModel):
    """Playlist addressed by a raw identifier or a playlist URL."""

    kind: Literal["playlist"] = "playlist"
    reference: str = Field(min_length=1)

    @property
    def source_type(self) -> SourceType:
        return SourceType.PLAYLIST

    @property
    def description(self) -> str:
        return f"playlist: {self.reference}"


IngestionSource = Annotated[Union[ChannelSource, PlaylistSource], Field(discriminator="kind")]


__all__ = ["ChannelSource", "PlaylistSource", "IngestionSource"]
