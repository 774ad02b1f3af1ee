"""
Model Store Module
==================

Fetches and verifies ONNX model files from a release server or an
S3-compatible bucket.
"""

from .artifacts import ArtifactStore, MANIFEST_NAME, artifact_base_name, file_sha256
from .backends import (
    ByteStream,
    FetchBackend,
    ObjectStoreBackend,
    StaticBackend,
    create_backend,
)

__all__ = [
    'ArtifactStore',
    'MANIFEST_NAME',
    'artifact_base_name',
    'file_sha256',
    'ByteStream',
    'FetchBackend',
    'ObjectStoreBackend',
    'StaticBackend',
    'create_backend',
]
