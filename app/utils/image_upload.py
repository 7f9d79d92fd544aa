"""
Image Upload Utility - validate and resize uploaded images.

Supported formats: JPG, PNG, GIF, WEBP, BMP
Max file size: 10MB

Resizing uses "fill" semantics: the image is stretched to the exact target
box, aspect ratio is not preserved.
"""

import io
from typing import Optional

from fastapi import HTTPException, UploadFile
from PIL import Image, UnidentifiedImageError

MAX_FILE_SIZE_MB = 10
MAX_FILE_SIZE_BYTES = MAX_FILE_SIZE_MB * 1024 * 1024
ALLOWED_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.gif', '.webp', '.bmp'}

# Target boxes used across the app
POSTING_IMAGE_SIZE = (1080, 790)
PROFILE_IMAGE_SIZE = (110, 110)

CONTENT_TYPES = {
    'JPEG': 'image/jpeg',
    'PNG': 'image/png',
    'GIF': 'image/gif',
    'WEBP': 'image/webp',
    'BMP': 'image/bmp',
}


def get_file_extension(filename: str) -> str:
    """Get lowercase file extension."""
    if '.' not in filename:
        return ''
    return '.' + filename.rsplit('.', 1)[1].lower()


def is_upload(value) -> bool:
    """True for a real multipart file part (form text fields come in as str)."""
    return hasattr(value, "read") and hasattr(value, "filename") and bool(value.filename)


async def read_image(file: UploadFile) -> bytes:
    """
    Read and validate an uploaded image.

    Raises:
        HTTPException on missing filename, bad extension or size
    """
    if not file.filename:
        raise HTTPException(status_code=400, detail="No filename provided")

    ext = get_file_extension(file.filename)
    if ext not in ALLOWED_EXTENSIONS:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type '{ext}'. Allowed: JPG, PNG, GIF, WEBP, BMP"
        )

    content = await file.read()

    if len(content) > MAX_FILE_SIZE_BYTES:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size: {MAX_FILE_SIZE_MB}MB"
        )

    if not content:
        raise HTTPException(status_code=400, detail="Empty file")

    return content


def resize_image(content: bytes, size: tuple, fmt: Optional[str] = None) -> bytes:
    """
    Stretch the image to exactly `size` and re-encode it.

    Args:
        content: original image bytes
        size: (width, height)
        fmt: output format (JPEG, PNG, ...); defaults to the source format

    Raises:
        HTTPException(400) if the bytes are not a readable image
    """
    try:
        with Image.open(io.BytesIO(content)) as image:
            output_format = (fmt or image.format or 'PNG').upper()
            resized = image.resize(size)
    except (UnidentifiedImageError, OSError) as e:
        raise HTTPException(status_code=400, detail=f"Error reading image: {str(e)}")

    if output_format == 'JPEG' and resized.mode not in ('RGB', 'L'):
        resized = resized.convert('RGB')

    buffer = io.BytesIO()
    resized.save(buffer, format=output_format)
    return buffer.getvalue()


def content_type_for(fmt: str) -> str:
    return CONTENT_TYPES.get(fmt.upper(), 'application/octet-stream')
