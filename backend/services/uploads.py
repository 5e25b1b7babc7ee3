import base64
import logging
from typing import Callable

log = logging.getLogger(__name__)

# file picker, camera capture, drag-and-drop
UPLOAD_FIELDS = ("image", "camera", "dropped")


def pick_upload(files):
    """Return the first non-empty upload among the intake fields, or None."""
    for field in UPLOAD_FIELDS:
        f = files.get(field) if files else None
        if f is not None and (getattr(f, "filename", None) or "") != "":
            return f
    return None


class ImageIngestion:
    """Reads one uploaded image into a base64 data URI."""

    def __init__(self):
        self.loading = False

    def ingest(self, file, on_complete: Callable[[str], None]) -> bool:
        if file is None:
            return False
        self.loading = True
        try:
            data = file.read()
            if not data:
                return False
            mime = getattr(file, "mimetype", None) or "application/octet-stream"
            encoded = f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"
        finally:
            self.loading = False
        log.info("Imagen subida (%s, %d bytes)", mime, len(data))
        on_complete(encoded)
        return True
