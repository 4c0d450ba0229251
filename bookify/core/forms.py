from fastapi import UploadFile
from pydantic import BaseModel, ValidationError as PydanticValidationError
from typing import Optional, Tuple, Type, TypeVar
from bookify.core.exceptions import ValidationError
from bookify.services import upload_service
from bookify.services.upload_service import ALLOWED_TYPES, MAX_FILE_SIZE

ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_form(model_cls: Type[ModelT], **data) -> ModelT:
    """Build a request model from multipart form fields"""
    try:
        return model_cls(**data)
    except PydanticValidationError as e:
        errors = e.errors(include_url=False, include_context=False, include_input=False)
        raise ValidationError("Invalid form data", {"errors": errors})


def blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None or not value.strip():
        return None
    return value


async def read_image(file: Optional[UploadFile]) -> Optional[Tuple[bytes, str, str]]:
    """
    Read an uploaded image as (content, filename, content_type).

    Returns None when no file was sent.
    """
    if file is None or not file.filename:
        return None

    if file.content_type not in ALLOWED_TYPES:
        raise ValidationError(
            f"File type not allowed. Allowed: {', '.join(ALLOWED_TYPES)}"
        )

    content = await file.read()
    if len(content) > MAX_FILE_SIZE:
        raise ValidationError(
            f"File too large. Max: {MAX_FILE_SIZE // (1024 * 1024)}MB"
        )

    return content, file.filename, file.content_type


async def upload_optional(file: Optional[UploadFile], folder: str) -> Optional[str]:
    """Upload the image when one was sent; None otherwise"""
    image = await read_image(file)
    if not image:
        return None
    return await upload_service.upload_image(*image, folder=folder)


async def upload_or_default(file: Optional[UploadFile], folder: str) -> str:
    """Upload the image when one was sent, else use the default image"""
    image = await read_image(file)
    return await upload_service.upload_or_default(*(image or (None, None, None)), folder=folder)
