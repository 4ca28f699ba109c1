"""
On-device colour summary for a rock photo.

The image is reduced to a 120x120 thumbnail, its pixels averaged, and the
mean colour converted to HSV and mapped onto a handful of field colour
names. Hue thresholds are in degrees; saturation and value are 0..1.
"""

import colorsys
from dataclasses import dataclass, asdict
from typing import Union

import numpy as np
from PIL import Image

from photos import open_image

SAMPLE_SIZE = (120, 120)

DARK_VALUE = 0.18
GREY_SATURATION = 0.12
WHITE_VALUE = 0.8
BROWN_VALUE = 0.55
IRON_OXIDE_SATURATION = 0.3

# (name, lower bound inclusive, upper bound exclusive)
HUE_BANDS = [
    ("red", 0, 15),
    ("orange", 15, 40),
    ("yellow", 40, 70),
    ("green", 70, 170),
    ("blue", 170, 260),
    ("purple", 260, 345),
    ("red", 345, 360),
]
WARM = {"red", "orange", "yellow"}


@dataclass
class ColourSummary:
    name: str
    rgb: tuple[int, int, int]
    hex: str
    hsv: tuple[float, float, float]
    iron_oxide_likely: bool

    def to_dict(self) -> dict:
        d = asdict(self)
        d["rgb"] = list(self.rgb)
        d["hsv"] = list(self.hsv)
        return d


def hue_band(hue_deg: float) -> str:
    h = hue_deg % 360
    for name, lo, hi in HUE_BANDS:
        if lo <= h < hi:
            return name
    return "red"


def classify(h: float, s: float, v: float) -> str:
    """Map HSV (hue in degrees) to a qualitative colour name."""
    if v < DARK_VALUE:
        return "very dark/black"
    if s < GREY_SATURATION:
        return "white" if v > WHITE_VALUE else "grey"
    band = hue_band(h)
    if band in WARM and v < BROWN_VALUE:
        return "brown"
    return band


def iron_oxide_likely(h: float, s: float) -> bool:
    """Red-orange hue with real saturation: hematite/goethite staining."""
    band = hue_band(h)
    return band in ("red", "orange") and s > IRON_OXIDE_SATURATION


def summarize_rgb(r: float, g: float, b: float) -> ColourSummary:
    """Classify a mean colour given as 0..255 channel values."""
    hf, sf, vf = colorsys.rgb_to_hsv(r / 255.0, g / 255.0, b / 255.0)
    h = hf * 360.0
    rgb = (int(round(r)), int(round(g)), int(round(b)))
    return ColourSummary(
        name=classify(h, sf, vf),
        rgb=rgb,
        hex="#{:02x}{:02x}{:02x}".format(*rgb),
        hsv=(round(h, 1), round(sf, 3), round(vf, 3)),
        iron_oxide_likely=iron_oxide_likely(h, sf),
    )


def summarize(image: Union[Image.Image, bytes, str]) -> ColourSummary:
    """Average colour and label for a PIL image, raw bytes or a data URL."""
    img = image if isinstance(image, Image.Image) else open_image(image)
    if img.mode != "RGB":
        img = img.convert("RGB")
    thumb = img.resize(SAMPLE_SIZE, Image.BILINEAR)
    pixels = np.asarray(thumb, dtype=np.float64).reshape(-1, 3)
    r, g, b = pixels.mean(axis=0)
    return summarize_rgb(r, g, b)
