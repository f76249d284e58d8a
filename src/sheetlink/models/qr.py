from __future__ import annotations

from typing import Literal

from pydantic import BaseModel

GradientType = Literal["linear", "radial"]


class ColorStop(BaseModel):
    offset: float
    color: str


class Gradient(BaseModel):
    type: GradientType = "linear"
    rotation: float = 0.0
    color_stops: list[ColorStop] = []


class DotsOptions(BaseModel):
    color: str = "#000000"
    gradient: Gradient | None = None
    type: Literal["square", "dots", "rounded", "extra-rounded", "classy", "classy-rounded"] = (
        "rounded"
    )


class CornersSquareOptions(BaseModel):
    color: str = "#000000"
    gradient: Gradient | None = None
    type: Literal["square", "dot", "extra-rounded"] = "extra-rounded"


class CornersDotOptions(BaseModel):
    color: str = "#000000"
    gradient: Gradient | None = None
    type: Literal["square", "dot"] = "dot"


class BackgroundOptions(BaseModel):
    color: str = "#ffffff"
    gradient: Gradient | None = None


class ImageOptions(BaseModel):
    source: str | None = None  # Centre logo; data URL or absolute URL
    hide_background_dots: bool = True
    image_size: float = 0.4
    margin: int = 0
    cross_origin: str = "anonymous"


class EncodingOptions(BaseModel):
    type_number: int = 0  # 0 lets the renderer pick the smallest version
    mode: Literal["Numeric", "Alphanumeric", "Byte", "Kanji"] = "Byte"
    error_correction_level: Literal["L", "M", "Q", "H"] = "M"


class QRStyleOptions(BaseModel):
    """Complete style for one rendered QR code. Every field has a default."""

    width: int = 300
    height: int = 300
    margin: int = 10
    dots: DotsOptions = DotsOptions()
    corners_square: CornersSquareOptions = CornersSquareOptions()
    corners_dot: CornersDotOptions = CornersDotOptions()
    background: BackgroundOptions = BackgroundOptions()
    image: ImageOptions = ImageOptions()
    encoding: EncodingOptions = EncodingOptions()
