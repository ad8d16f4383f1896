"""
Uploads Module - image admission and storage.
"""

from agora.modules.uploads.storage import AdmittedFile, StoredFile, UploadStorage

__all__ = ["AdmittedFile", "StoredFile", "UploadStorage"]
