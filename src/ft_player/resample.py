"""Pillow resampling boundary between composited canvases and display buffers."""

from __future__ import annotations

from PIL import Image, ImageEnhance, ImageOps

from ft_player.raster import ImageOptions, RasterBuffer

CONTRAST_DELTA = 0.2


def fit_image(image: Image.Image, width: int, height: int) -> Image.Image:
    """Scale ``image`` to fit ``width`` x ``height`` and boost its contrast."""
    fitted = ImageOps.contain(
        image.convert("RGB"), (width, height), Image.Resampling.BICUBIC
    )
    return ImageEnhance.Contrast(fitted).enhance(1.0 + CONTRAST_DELTA)


def blit(image: Image.Image, raster: RasterBuffer) -> RasterBuffer:
    """Plot ``image`` into the top-left corner of ``raster``."""
    rgb = image.convert("RGB")
    src_width, src_height = rgb.size
    raw = rgb.tobytes()
    for y in range(min(src_height, raster.height)):
        row = y * src_width * 3
        for x in range(min(src_width, raster.width)):
            offset = row + x * 3
            raster.plot(x, y, raw[offset], raw[offset + 1], raw[offset + 2])
    return raster


def render_image(image: Image.Image, options: ImageOptions) -> RasterBuffer:
    """Fit ``image`` to the target canvas and return it as a raster buffer."""
    fitted = fit_image(image, options.width, options.height)
    return blit(fitted, RasterBuffer(options))
