"""Raster image ingestion into RGBA rasters."""
from pathlib import Path
from typing import Union

import numpy as np
from PIL import Image
from PIL import ImageOps

from flatvec.types import InvalidInputError, Raster, VectorizationError


def load_raster(path: Union[str, Path]) -> Raster:
    """
    Load a raster image file as RGBA.

    EXIF orientation is applied so the raster matches what viewers show.
    Alpha is kept as a channel rather than composited.

    Args:
        path: Path to image file

    Returns:
        Raster

    Raises:
        FileNotFoundError: If file doesn't exist
        VectorizationError: If file cannot be loaded
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Image file not found: {path}")

    if not path.is_file():
        raise VectorizationError(f"Path is not a file: {path}")

    try:
        with Image.open(path) as img:
            # Apply EXIF orientation transformation to handle rotation
            img = ImageOps.exif_transpose(img)
            if img.mode != 'RGBA':
                img = img.convert('RGBA')
            return Raster(np.array(img, dtype=np.uint8))
    except (IOError, OSError) as e:
        raise VectorizationError(f"Failed to load image {path}: {e}") from e


def raster_from_array(image: np.ndarray) -> Raster:
    """
    Create a Raster from a numpy array.

    Args:
        image: (H, W) grayscale, (H, W, 3) RGB or (H, W, 4) RGBA array.
               Float arrays are taken to be in [0, 1].

    Returns:
        Raster

    Raises:
        InvalidInputError: If the array shape is unsupported or an integer
            channel lies outside 0..255
    """
    image = np.asarray(image)

    if np.issubdtype(image.dtype, np.floating):
        image = np.clip(np.floor(image * 255.0 + 0.5), 0, 255).astype(np.uint8)
    elif image.dtype == np.bool_:
        image = image.astype(np.uint8) * 255
    elif image.dtype != np.uint8:
        # Range is checked by Raster, not wrapped here
        image = image.astype(np.int64)

    if image.ndim == 2:
        # Grayscale - convert to RGB
        image = np.stack([image] * 3, axis=-1)

    if image.ndim != 3:
        raise InvalidInputError(f"Expected 2D or 3D array, got {image.ndim}D")

    if image.shape[2] == 3:
        alpha = np.full(image.shape[:2] + (1,), 255, dtype=image.dtype)
        image = np.concatenate([image, alpha], axis=2)
    elif image.shape[2] != 4:
        raise InvalidInputError(f"Expected 3 or 4 channels, got {image.shape[2]}")

    return Raster(image)


def raster_to_image(raster: Raster) -> Image.Image:
    """Convert a Raster to a PIL RGBA image."""
    return Image.fromarray(raster.pixels.copy())


def save_raster(raster: Raster, output_path: Union[str, Path]) -> None:
    """
    Save a raster (e.g. a posterized preview) as an image file.

    The format follows the file extension; PNG keeps the alpha channel.
    """
    image = raster_to_image(raster)
    if Path(output_path).suffix.lower() in ('.jpg', '.jpeg'):
        image = image.convert('RGB')
    image.save(output_path)
