"""
Invitation card image validation and storage
"""

import io
import logging
import os
import uuid
from dataclasses import dataclass

from PIL import Image, UnidentifiedImageError

from app.core.config import settings
from app.core.errors import ValidationError

logger = logging.getLogger(__name__)

# Declared media type -> (Pillow format, file extension)
IMAGE_FORMATS = {
    "image/jpeg": ("JPEG", "jpg"),
    "image/jpg": ("JPEG", "jpg"),
    "image/png": ("PNG", "png"),
    "image/webp": ("WEBP", "webp"),
}


@dataclass
class InvitationCardAsset:
    """An uploaded invitation card image"""
    filename: str
    content_type: str
    data: bytes


class AssetStore:
    """Service for invitation card files"""

    @staticmethod
    def validate_card(card) -> str:
        """Check a card upload; returns the file extension to store it under"""
        if card is None or not card.data:
            raise ValidationError("An invitation card image is required to approve the event")

        content_type = (card.content_type or "").lower()
        if content_type not in settings.ALLOWED_IMAGE_TYPES or content_type not in IMAGE_FORMATS:
            raise ValidationError(
                f"Invalid file type. Allowed types: {', '.join(settings.ALLOWED_IMAGE_TYPES)}",
                details={"content_type": card.content_type},
            )

        if len(card.data) > settings.MAX_UPLOAD_SIZE:
            raise ValidationError(
                f"Invitation card is too large (max {settings.MAX_UPLOAD_SIZE // (1024 * 1024)}MB)",
                details={"size": len(card.data)},
            )

        expected_format, extension = IMAGE_FORMATS[content_type]
        try:
            with Image.open(io.BytesIO(card.data)) as img:
                actual_format = img.format
                img.verify()
        except Image.DecompressionBombError as exc:
            raise ValidationError(
                "The invitation card dimensions are too large",
                details={"max_pixels": Image.MAX_IMAGE_PIXELS},
            ) from exc
        except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as exc:
            raise ValidationError("The invitation card is not a readable image") from exc

        if actual_format != expected_format:
            raise ValidationError(
                f"The invitation card content is {actual_format}, not {content_type}",
                details={"content_type": card.content_type, "detected": actual_format},
            )
        return extension

    @staticmethod
    def save_card(event_id: int, card: InvitationCardAsset, extension: str) -> str:
        """Write the card under the uploads directory; returns its reference"""
        upload_dir = os.path.join(settings.UPLOAD_DIR, "events", str(event_id), "invitation-cards")
        os.makedirs(upload_dir, exist_ok=True)

        file_path = os.path.join(upload_dir, f"{uuid.uuid4().hex}.{extension}")
        with open(file_path, "wb") as f:
            f.write(card.data)

        logger.info(f"Invitation card stored for event {event_id}: {file_path}")
        return file_path

    @staticmethod
    def delete(ref: str) -> None:
        if ref and os.path.exists(ref):
            os.remove(ref)
