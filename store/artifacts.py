"""
Model Artifact Store
====================

Materializes ONNX weight files on local disk before a session is built.

FETCH PIPELINE (per artifact):
------------------------------
1. Ensure the model directory exists
2. force_update: drop the cached manifest, re-download the artifact
3. Artifact missing: stream it from the backend
4. update_check: hash the file and compare with version.json
   - mismatch: download ONCE more and accept it without re-verifying

The manifest (version.json) maps artifact base name -> sha256 hex digest.
It is shared by every variant, so loads go through one lock and are
memoized per directory for the lifetime of the store.

Files are never rewritten in place: each download goes to "<name>.part"
and is renamed over the target when complete.
"""

import asyncio
import hashlib
import json
import logging
import os
from pathlib import Path
from typing import Dict, Union

from tqdm import tqdm

from core.errors import (
    ArtifactIOError,
    InvalidModelNameError,
    ManifestError,
)
from .backends import FetchBackend

logger = logging.getLogger(__name__)

MANIFEST_NAME = "version.json"
HASH_BUFFER_SIZE = 64 * 1024


def artifact_base_name(name: str) -> str:
    """
    Manifest key for an artifact: the file name up to its first dot.

    "card.onnx" -> "card", "rockstack_v2.onnx" -> "rockstack_v2"
    """
    if not name or "/" in name or "\\" in name:
        raise InvalidModelNameError(name)
    base = name.split(".")[0]
    if not base:
        raise InvalidModelNameError(name)
    return base


def file_sha256(path: Union[str, Path], buffer_size: int = HASH_BUFFER_SIZE) -> str:
    """SHA-256 hex digest of a file, read in fixed-size blocks"""
    sha256 = hashlib.sha256()
    with open(path, "rb") as f:
        while True:
            block = f.read(buffer_size)
            if not block:
                break
            sha256.update(block)
    return sha256.hexdigest()


class ArtifactStore:
    """
    Fetches model files from a backend into a local directory.

    Args:
        backend: StaticBackend or ObjectStoreBackend
        update_check: verify artifacts against the manifest after fetching
        show_progress: draw a tqdm bar while downloading
    """

    def __init__(
        self,
        backend: FetchBackend,
        update_check: bool = False,
        show_progress: bool = True,
    ):
        self.backend = backend
        self.update_check = update_check
        self.show_progress = show_progress
        self._manifest_lock = asyncio.Lock()
        self._manifests: Dict[Path, Dict[str, str]] = {}

    async def fetch(
        self,
        name: str,
        target_dir: Union[str, Path],
        force_update: bool = False,
    ) -> Path:
        """
        Make sure `name` exists under `target_dir` and return its path.

        Raises:
            ArtifactFetchError: backend/network failure
            ManifestError: manifest unreadable or has no entry for `name`
            InvalidModelNameError: `name` is not a plain file name
            ArtifactIOError: filesystem failure
        """
        base_name = artifact_base_name(name)
        target_dir = Path(target_dir)
        self._ensure_dir(target_dir)

        if force_update:
            await self.refresh_manifest(target_dir)

        artifact_path = target_dir / name
        if force_update or not artifact_path.exists():
            await self._download(name, artifact_path)

        if self.update_check:
            manifest = await self.load_manifest(target_dir)
            expected_hash = manifest.get(base_name)
            if expected_hash is None:
                raise ManifestError(f"No manifest entry for model: {base_name}")

            current_hash = await self._sha256(artifact_path)
            if current_hash != expected_hash.lower():
                logger.info(f"model {artifact_path} hash mismatch, downloading...")
                await self._download(name, artifact_path)

        return artifact_path

    async def refresh_manifest(self, target_dir: Union[str, Path]) -> None:
        """Forget the cached manifest so the next load fetches it again"""
        manifest_path = Path(target_dir) / MANIFEST_NAME
        async with self._manifest_lock:
            self._manifests.pop(manifest_path, None)
            if manifest_path.exists():
                logger.info(f"deleting {manifest_path}")
                try:
                    manifest_path.unlink()
                except OSError as e:
                    raise ArtifactIOError(f"Cannot delete {manifest_path}: {e}") from e

    async def load_manifest(self, target_dir: Union[str, Path]) -> Dict[str, str]:
        """Read version.json from disk, downloading it first if absent"""
        manifest_path = Path(target_dir) / MANIFEST_NAME
        async with self._manifest_lock:
            cached = self._manifests.get(manifest_path)
            if cached is not None:
                return cached

            if not manifest_path.exists():
                await self._download(MANIFEST_NAME, manifest_path)

            manifest = self._read_manifest(manifest_path)
            self._manifests[manifest_path] = manifest
            return manifest

    async def aclose(self) -> None:
        await self.backend.aclose()

    # =========================================================================
    # Internals
    # =========================================================================

    @staticmethod
    def _ensure_dir(target_dir: Path) -> None:
        if target_dir.exists():
            return
        logger.info(f"creating model directory: {target_dir}")
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ArtifactIOError(f"Cannot create model directory {target_dir}: {e}") from e

    @staticmethod
    def _read_manifest(manifest_path: Path) -> Dict[str, str]:
        try:
            with open(manifest_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except OSError as e:
            raise ArtifactIOError(f"Cannot read {manifest_path}: {e}") from e
        except json.JSONDecodeError as e:
            raise ManifestError(f"Invalid manifest {manifest_path}: {e}") from e

        if not isinstance(data, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in data.items()
        ):
            raise ManifestError(f"Invalid manifest {manifest_path}: expected name -> hash mapping")
        return data

    async def _sha256(self, path: Path) -> str:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, file_sha256, path)
        except OSError as e:
            raise ArtifactIOError(f"Cannot hash {path}: {e}") from e

    async def _download(self, key: str, dest: Path) -> int:
        """Stream `key` from the backend into `dest`; returns bytes written"""
        part_path = dest.with_name(dest.name + ".part")
        written = 0
        try:
            async with self.backend.open(key) as stream:
                progress = tqdm(
                    total=stream.length or None,
                    unit="B",
                    unit_scale=True,
                    desc=key,
                    disable=not self.show_progress,
                    leave=False,
                )
                try:
                    with open(part_path, "wb") as out:
                        async for chunk in stream.chunks:
                            out.write(chunk)
                            written += len(chunk)
                            progress.update(len(chunk))
                finally:
                    progress.close()
            os.replace(part_path, dest)
        except OSError as e:
            self._discard(part_path)
            raise ArtifactIOError(f"Cannot write {dest}: {e}") from e
        except BaseException:
            self._discard(part_path)
            raise

        logger.info(f"downloaded {written} bytes to {dest}")
        return written

    @staticmethod
    def _discard(path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not remove partial download {path}: {e}")
