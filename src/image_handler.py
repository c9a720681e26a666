"""
Image upload handling for LabelSense AI: validation, decoding and
conversion to the RGB arrays the renderer draws on.
"""
import io
import logging
from typing import Any, Dict, Union

import cv2
import numpy as np
from PIL import Image

from src import config
from src.errors import FileReadError

logger = logging.getLogger(__name__)


class ImageUploadHandler:
    """Handles image upload, validation, and basic information extraction."""

    MAX_FILE_SIZE = config.MAX_FILE_SIZE

    @staticmethod
    def read_upload(uploaded_file) -> bytes:
        """
        Read and validate an uploaded image file.

        Args:
            uploaded_file: Streamlit uploaded file object (anything with
                name, size and read())

        Returns:
            Raw image bytes, guaranteed to decode

        Raises:
            FileReadError: if the file is too large or Pillow cannot decode it;
                the file name and extension are not consulted
        """
        if uploaded_file is None:
            raise FileReadError("No file selected")

        if uploaded_file.size > ImageUploadHandler.MAX_FILE_SIZE:
            raise FileReadError(
                f"File too large, please choose a file under "
                f"{ImageUploadHandler.MAX_FILE_SIZE / 1024 / 1024:.0f}MB"
            )

        uploaded_file.seek(0)
        data = uploaded_file.read()
        ImageUploadHandler.decode(data)
        logger.info("Read upload %s (%d bytes)", uploaded_file.name, len(data))
        return data

    @staticmethod
    def decode(data: bytes) -> Image.Image:
        """
        Decode image bytes into a fully loaded PIL Image.

        Raises:
            FileReadError: if the bytes are not a readable image
        """
        if not data:
            raise FileReadError("The file is empty")
        try:
            with Image.open(io.BytesIO(data)) as probe:
                probe.verify()
            # verify() leaves the image unusable, so open again to load pixels
            image = Image.open(io.BytesIO(data))
            image.load()
        except Exception as e:
            raise FileReadError(f"Could not read image file: {e}") from e
        return image

    @staticmethod
    def get_image_info(image: Image.Image, data: bytes) -> Dict[str, Any]:
        """
        Extract basic information from the image.

        Args:
            image: PIL Image object
            data: Raw bytes the image was decoded from

        Returns:
            Dictionary containing image information
        """
        return {
            'width': image.width,
            'height': image.height,
            'channels': len(image.getbands()),
            'file_size': len(data),
            'color_mode': image.mode,
            'format': image.format,
        }


class ImagePreprocessor:
    """Brings decoded images into the RGB uint8 layout used for drawing."""

    @staticmethod
    def to_rgb_array(image: Union[Image.Image, np.ndarray]) -> np.ndarray:
        """
        Convert an image to an RGB numpy array at its native size.

        Args:
            image: PIL Image, or numpy array (grayscale, RGB or RGBA)

        Returns:
            Array of shape (height, width, 3), dtype uint8
        """
        if isinstance(image, np.ndarray):
            if image.ndim == 2:
                return cv2.cvtColor(image.astype(np.uint8), cv2.COLOR_GRAY2RGB)
            if image.shape[2] == 4:
                image = Image.fromarray(image.astype(np.uint8))
            else:
                return image[:, :, :3].astype(np.uint8).copy()

        if image.mode != 'RGB':
            if image.mode in ('RGBA', 'LA') or (image.mode == 'P' and 'transparency' in image.info):
                # Flatten transparent images onto a white background
                rgba = image.convert('RGBA')
                background = Image.new('RGB', rgba.size, (255, 255, 255))
                background.paste(rgba, mask=rgba.split()[-1])
                image = background
            else:
                image = image.convert('RGB')

        return np.array(image)
