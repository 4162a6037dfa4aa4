from fastapi import UploadFile

from app.exceptions import MissingInput, PayloadTooLarge, UnsupportedMediaType
from app.schemas import UploadedImage


async def accept_upload(file: UploadFile | None, max_bytes: int) -> UploadedImage:
    """Validate the `image` field and buffer it in memory.

    Raises:
        MissingInput: if no file was sent.
        UnsupportedMediaType: if the declared type is not `image/*`.
        PayloadTooLarge: if the body is larger than `max_bytes`.
    """
    # browsers send an empty, unnamed part when no file was chosen
    if file is None or not file.filename:
        raise MissingInput()
    content_type = (file.content_type or "").lower()
    if not content_type.startswith("image/"):
        raise UnsupportedMediaType(f"Received content type '{file.content_type}'")
    if file.size is not None and file.size > max_bytes:
        raise PayloadTooLarge(f"Upload is {file.size} bytes; the limit is {max_bytes} bytes")
    raw = await file.read(max_bytes + 1)
    if len(raw) > max_bytes:
        raise PayloadTooLarge(f"Upload exceeds the limit of {max_bytes} bytes")
    return UploadedImage(content=raw, content_type=content_type, filename=file.filename)
