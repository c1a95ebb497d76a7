from __future__ import annotations

FOLDER_MIME: str = "application/vnd.google-apps.folder"
OCTET_STREAM: str = "application/octet-stream"


def is_folder(mime_type: str) -> bool:
    return mime_type == FOLDER_MIME
