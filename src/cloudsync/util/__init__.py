from .hashing import dropbox_content_hash, file_digest, local_matches_remote
from .ids import new_boundary
from .mime import FOLDER_MIME, OCTET_STREAM, is_folder
from .time import now_utc, normalize_dt, parse_optional_rfc3339, parse_rfc3339, seconds_until

__all__ = [
    "new_boundary",
    "FOLDER_MIME",
    "OCTET_STREAM",
    "is_folder",
    "now_utc",
    "parse_rfc3339",
    "parse_optional_rfc3339",
    "normalize_dt",
    "seconds_until",
    "file_digest",
    "dropbox_content_hash",
    "local_matches_remote",
]
