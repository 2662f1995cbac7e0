"""Core data types and enumerations for SlideStack."""

import dataclasses
import enum
from pathlib import Path

import numpy as np
from PIL import Image


class FrameSource(enum.Enum):
    """Where a decoded frame came from."""
    STILL = "still"
    ANIMATION_START = "animation_start"
    ANIMATION_FRAME = "animation_frame"


@dataclasses.dataclass
class DecodedImage:
    """A decoded RGBA image buffer ready for display."""
    buffer: np.ndarray
    width: int
    height: int

    @classmethod
    def from_pil(cls, image: Image.Image) -> "DecodedImage":
        rgba = image.convert("RGBA")
        return cls(buffer=np.asarray(rgba), width=rgba.width, height=rgba.height)

    def __sizeof__(self) -> int:
        return self.buffer.nbytes


@dataclasses.dataclass
class DecodeResult:
    """A result handed back by the decode worker."""
    path: Path
    image: DecodedImage
    source: FrameSource = FrameSource.STILL
