from pathlib import Path
from uuid import uuid4

from PIL import Image, UnidentifiedImageError
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from swiftride.errors import ValidationError

IMAGE_EXTENSIONS = {"png", "jpg", "jpeg", "webp", "gif"}
DOCUMENT_EXTENSIONS = {"pdf", "txt", "csv", "doc", "docx", "xls", "xlsx"}
ATTACHMENT_KINDS = ("image", "file")


class FileService:
    @staticmethod
    def _extension(filename):
        if "." not in filename:
            return ""
        return filename.rsplit(".", 1)[1].lower()

    @staticmethod
    def booking_folder(upload_root, booking_id):
        return Path(upload_root) / "bookings" / str(booking_id)

    @classmethod
    def save_attachment(cls, storage: FileStorage, booking_id, upload_root: str, base_url: str, kind="file"):
        """Store an upload under the booking's folder and return its public URL."""
        if kind not in ATTACHMENT_KINDS:
            raise ValidationError("Attachment kind must be 'image' or 'file'.")
        if not storage or not storage.filename:
            raise ValidationError("An attachment is required.")

        filename = secure_filename(storage.filename)
        extension = cls._extension(filename)
        allowed = IMAGE_EXTENSIONS if kind == "image" else IMAGE_EXTENSIONS | DOCUMENT_EXTENSIONS
        if not filename or extension not in allowed:
            raise ValidationError("Unsupported attachment format.")

        if kind == "image":
            # Verify actual image bytes to avoid extension spoofing.
            try:
                img = Image.open(storage.stream)
                img.verify()
            except (UnidentifiedImageError, OSError, SyntaxError) as exc:
                raise ValidationError("Invalid image file.") from exc
            finally:
                storage.stream.seek(0)

        folder = cls.booking_folder(upload_root, booking_id)
        folder.mkdir(parents=True, exist_ok=True)

        unique_filename = f"{uuid4().hex}.{extension}"
        storage.save(folder / unique_filename)
        return f"{base_url.rstrip('/')}/bookings/{booking_id}/{unique_filename}"
