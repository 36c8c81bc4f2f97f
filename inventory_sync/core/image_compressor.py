# inventory_sync/core/image_compressor.py
"""Client-side image re-encoding that keeps uploads under a byte budget."""
from io import BytesIO
from typing import Optional, Tuple
import math
import mimetypes

from PIL import Image, ImageOps, UnidentifiedImageError

from inventory_sync.config import config
from inventory_sync.exceptions import UnsupportedFormat, CompressionFailed
from inventory_sync.logging_setup import get_logger
from inventory_sync.models import ImageAsset

logger = get_logger('image')

# MIME type -> Pillow format name
ACCEPTED_CONTENT_TYPES = {
    'image/jpeg': 'JPEG',
    'image/jpg': 'JPEG',
    'image/png': 'PNG',
    'image/gif': 'GIF',
}

OUTPUT_CONTENT_TYPE = 'image/jpeg'
OUTPUT_FORMAT = 'JPEG'
BITS_PER_BYTE = 8

# Applied per extra pass when more than one pass is configured
QUALITY_STEP = 10
MIN_QUALITY = 10
DIMENSION_STEP = 0.85


def target_dimension(max_bytes: int, bits_per_pixel: float = 3.0, safety_factor: float = 0.9) -> float:
    """Largest side length expected to encode within max_bytes.

    Args:
        max_bytes: Byte budget
        bits_per_pixel: Assumed bits per pixel of the lossy output
        safety_factor: Multiplier below 1 biasing toward smaller output

    Returns:
        Maximum dimension in pixels
    """
    return math.sqrt(max_bytes * BITS_PER_BYTE / bits_per_pixel) * safety_factor


def scaled_size(width: int, height: int, max_dimension: float) -> Tuple[int, int]:
    """Scale so the larger side equals max_dimension; never upscales."""
    larger = max(width, height)
    if larger <= max_dimension:
        return width, height

    scale = max_dimension / larger
    return max(1, round(width * scale)), max(1, round(height * scale))


def resolve_content_type(asset: ImageAsset) -> Optional[str]:
    content_type = (asset.content_type or '').lower().strip()
    if not content_type:
        content_type, _ = mimetypes.guess_type(asset.filename)
    return content_type


def _flatten(image: Image.Image) -> Image.Image:
    """Convert to RGB, compositing any transparency onto white."""
    if image.mode in ('RGBA', 'LA') or (image.mode == 'P' and 'transparency' in image.info):
        rgba = image.convert('RGBA')
        background = Image.new('RGB', rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.split()[-1])
        return background
    return image.convert('RGB')


class ImageCompressor:
    """Resize-and-reencode pipeline for stock thumbnails."""

    def __init__(
        self,
        quality: Optional[int] = None,
        bits_per_pixel: Optional[float] = None,
        safety_factor: Optional[float] = None,
        max_passes: Optional[int] = None
    ):
        image_config = config.image_config
        self.quality = quality if quality is not None else image_config['quality']
        self.bits_per_pixel = bits_per_pixel if bits_per_pixel is not None else image_config['bits_per_pixel']
        self.safety_factor = safety_factor if safety_factor is not None else image_config['safety_factor']
        self.max_passes = max(1, max_passes if max_passes is not None else image_config['max_passes'])
        self.default_max_bytes = image_config['max_bytes']

    def check_format(self, asset: ImageAsset) -> str:
        """Validate the asset's encoding.

        Returns:
            Pillow format name

        Raises:
            UnsupportedFormat: content type is not JPEG, PNG or GIF
        """
        content_type = resolve_content_type(asset)
        if content_type not in ACCEPTED_CONTENT_TYPES:
            raise UnsupportedFormat(details={'filename': asset.filename, 'content_type': content_type})
        return ACCEPTED_CONTENT_TYPES[content_type]

    def compress(self, asset: ImageAsset, max_bytes: Optional[int] = None) -> ImageAsset:
        """Re-encode an image so it is expected to fit in max_bytes.

        Images already within budget are returned unchanged. Larger ones are
        scaled down and written as JPEG whatever their source format.

        Args:
            asset: Source image
            max_bytes: Byte budget; defaults to IMAGE.max_bytes

        Returns:
            The original asset or a new JPEG asset

        Raises:
            UnsupportedFormat: Encoding not accepted, data not decodable, or
                more pixels than Pillow will decode
            CompressionFailed: Encoder produced no output, or a multi-pass
                configuration ran out of passes while still over budget
        """
        if max_bytes is None:
            max_bytes = self.default_max_bytes
        self.check_format(asset)

        if asset.size <= max_bytes:
            logger.debug(f"{asset.filename}: {asset.size} bytes within budget of {max_bytes}")
            return asset

        image = self._decode(asset)
        max_dimension = target_dimension(max_bytes, self.bits_per_pixel, self.safety_factor)
        quality = self.quality

        for attempt in range(1, self.max_passes + 1):
            width, height = scaled_size(image.width, image.height, max_dimension)
            data = self._encode(image, width, height, quality)

            if len(data) <= max_bytes or attempt == self.max_passes:
                break

            logger.info(
                f"{asset.filename}: pass {attempt} gave {len(data)} bytes at {width}x{height} q{quality}, tightening"
            )
            quality = max(MIN_QUALITY, quality - QUALITY_STEP)
            max_dimension *= DIMENSION_STEP

        if len(data) > max_bytes:
            if self.max_passes > 1:
                raise CompressionFailed(
                    f"Could not bring {asset.filename} under {max_bytes} bytes in {self.max_passes} passes",
                    details={'size': len(data), 'max_bytes': max_bytes}
                )
            logger.warning(f"{asset.filename}: compressed to {len(data)} bytes, still over budget of {max_bytes}")

        logger.info(
            f"Compressed {asset.filename} from {asset.size} to {len(data)} bytes "
            f"({image.width}x{image.height} -> {width}x{height})"
        )

        return ImageAsset(
            filename=asset.filename,
            data=data,
            content_type=OUTPUT_CONTENT_TYPE,
            width=width,
            height=height
        )

    def _decode(self, asset: ImageAsset) -> Image.Image:
        try:
            image = Image.open(BytesIO(asset.data))
            image.load()
        except Image.DecompressionBombError as e:
            raise UnsupportedFormat(
                f"{asset.filename} has too many pixels to process",
                details={'filename': asset.filename, 'max_pixels': Image.MAX_IMAGE_PIXELS, 'reason': str(e)}
            )
        except (UnidentifiedImageError, OSError) as e:
            raise UnsupportedFormat(
                f"Could not read {asset.filename} as an image: {str(e)}",
                details={'filename': asset.filename}
            )

        if image.format not in ACCEPTED_CONTENT_TYPES.values():
            raise UnsupportedFormat(details={'filename': asset.filename, 'format': image.format})

        return ImageOps.exif_transpose(image)

    def _encode(self, image: Image.Image, width: int, height: int, quality: int) -> bytes:
        try:
            frame = _flatten(image)
            if (width, height) != frame.size:
                frame = frame.resize((width, height), Image.Resampling.LANCZOS)

            buffer = BytesIO()
            frame.save(buffer, format=OUTPUT_FORMAT, quality=quality, optimize=True)
        except (OSError, ValueError) as e:
            raise CompressionFailed(f"Failed to optimize image: {str(e)}")

        data = buffer.getvalue()
        if not data:
            raise CompressionFailed()
        return data
