from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from core.errors import ArtifactFetchError, InvalidModelNameError, ManifestError
from store.artifacts import MANIFEST_NAME, ArtifactStore, artifact_base_name, file_sha256

from .fakes import FakeBackend, sha256_hex

GOOD = b"good model weights"
STALE = b"stale model weights"


def _store(backend: FakeBackend, update_check: bool = False) -> ArtifactStore:
    return ArtifactStore(backend, update_check=update_check, show_progress=False)


def test_artifact_base_name() -> None:
    assert artifact_base_name("card.onnx") == "card"
    assert artifact_base_name("rockstack_v2.onnx") == "rockstack_v2"
    for bad in ("", "../card.onnx", "a\\b.onnx", ".onnx"):
        with pytest.raises(InvalidModelNameError):
            artifact_base_name(bad)


def test_file_sha256(tmp_path: Path) -> None:
    path = tmp_path / "blob"
    path.write_bytes(GOOD * 1000)
    assert file_sha256(path, buffer_size=7) == sha256_hex(GOOD * 1000)


@pytest.mark.asyncio
async def test_fetch_downloads_missing_artifact(tmp_path: Path) -> None:
    backend = FakeBackend({"card.onnx": GOOD})
    store = _store(backend)
    target = tmp_path / "nested" / "models"

    path = await store.fetch("card.onnx", target)

    assert path == target / "card.onnx"
    assert path.read_bytes() == GOOD
    assert not (target / "card.onnx.part").exists()
    assert backend.opened == ["card.onnx"]


@pytest.mark.asyncio
async def test_fetch_reuses_existing_file_without_update_check(tmp_path: Path) -> None:
    (tmp_path / "card.onnx").write_bytes(STALE)
    backend = FakeBackend({"card.onnx": GOOD})

    path = await _store(backend).fetch("card.onnx", tmp_path)

    assert path.read_bytes() == STALE
    assert backend.opened == []


@pytest.mark.asyncio
async def test_update_check_keeps_matching_file(tmp_path: Path) -> None:
    (tmp_path / "card.onnx").write_bytes(GOOD)
    backend = FakeBackend({"card.onnx": GOOD})
    backend.set_manifest({"card": sha256_hex(GOOD)})

    await _store(backend, update_check=True).fetch("card.onnx", tmp_path)

    assert backend.count("card.onnx") == 0
    assert backend.count(MANIFEST_NAME) == 1


@pytest.mark.asyncio
async def test_update_check_repairs_mismatch_once(tmp_path: Path) -> None:
    (tmp_path / "card.onnx").write_bytes(STALE)
    backend = FakeBackend({"card.onnx": GOOD})
    backend.set_manifest({"card": sha256_hex(GOOD)})

    path = await _store(backend, update_check=True).fetch("card.onnx", tmp_path)

    assert path.read_bytes() == GOOD
    assert backend.count("card.onnx") == 1


@pytest.mark.asyncio
async def test_update_check_does_not_loop_on_persistent_mismatch(tmp_path: Path) -> None:
    (tmp_path / "card.onnx").write_bytes(STALE)
    backend = FakeBackend({"card.onnx": b"still not what the manifest says"})
    backend.set_manifest({"card": sha256_hex(GOOD)})

    path = await _store(backend, update_check=True).fetch("card.onnx", tmp_path)

    assert path.read_bytes() == b"still not what the manifest says"
    assert backend.count("card.onnx") == 1


@pytest.mark.asyncio
async def test_fresh_download_with_mismatch_is_repaired_once(tmp_path: Path) -> None:
    backend = FakeBackend({"card.onnx": STALE})
    backend.set_manifest({"card": sha256_hex(GOOD)})

    await _store(backend, update_check=True).fetch("card.onnx", tmp_path)

    # initial download plus exactly one repair
    assert backend.count("card.onnx") == 2


@pytest.mark.asyncio
async def test_missing_manifest_entry(tmp_path: Path) -> None:
    (tmp_path / "card.onnx").write_bytes(GOOD)
    backend = FakeBackend({"card.onnx": GOOD})
    backend.set_manifest({"other": sha256_hex(GOOD)})

    with pytest.raises(ManifestError):
        await _store(backend, update_check=True).fetch("card.onnx", tmp_path)


@pytest.mark.asyncio
async def test_corrupt_manifest(tmp_path: Path) -> None:
    (tmp_path / "card.onnx").write_bytes(GOOD)
    (tmp_path / MANIFEST_NAME).write_text("{not json", encoding="utf-8")
    backend = FakeBackend({"card.onnx": GOOD})

    with pytest.raises(ManifestError):
        await _store(backend, update_check=True).fetch("card.onnx", tmp_path)


@pytest.mark.asyncio
async def test_force_update_refetches_manifest_and_artifact(tmp_path: Path) -> None:
    (tmp_path / "card.onnx").write_bytes(STALE)
    (tmp_path / MANIFEST_NAME).write_text('{"card": "00"}', encoding="utf-8")
    backend = FakeBackend({"card.onnx": GOOD})
    backend.set_manifest({"card": sha256_hex(GOOD)})

    path = await _store(backend, update_check=True).fetch("card.onnx", tmp_path, force_update=True)

    assert path.read_bytes() == GOOD
    assert backend.count(MANIFEST_NAME) == 1
    assert backend.count("card.onnx") == 1


@pytest.mark.asyncio
async def test_manifest_is_loaded_once_for_concurrent_fetches(tmp_path: Path) -> None:
    names = ["card.onnx", "counting.onnx", "penguin.onnx"]
    backend = FakeBackend({name: GOOD for name in names})
    backend.set_manifest({name.split(".")[0]: sha256_hex(GOOD) for name in names})
    store = _store(backend, update_check=True)

    await asyncio.gather(*(store.fetch(name, tmp_path) for name in names))

    assert backend.count(MANIFEST_NAME) == 1
    for name in names:
        assert backend.count(name) == 1


@pytest.mark.asyncio
async def test_backend_error_leaves_no_partial_file(tmp_path: Path) -> None:
    backend = FakeBackend({"card.onnx": GOOD})
    backend.fail_midway.add("card.onnx")

    with pytest.raises(ArtifactFetchError):
        await _store(backend).fetch("card.onnx", tmp_path)

    assert not (tmp_path / "card.onnx").exists()
    assert not (tmp_path / "card.onnx.part").exists()


@pytest.mark.asyncio
async def test_failed_repair_keeps_previous_file(tmp_path: Path) -> None:
    (tmp_path / "card.onnx").write_bytes(STALE)
    backend = FakeBackend({"card.onnx": GOOD})
    backend.fail_midway.add("card.onnx")
    backend.set_manifest({"card": sha256_hex(GOOD)})

    with pytest.raises(ArtifactFetchError):
        await _store(backend, update_check=True).fetch("card.onnx", tmp_path)

    assert (tmp_path / "card.onnx").read_bytes() == STALE


@pytest.mark.asyncio
async def test_unknown_key_is_fetch_error(tmp_path: Path) -> None:
    with pytest.raises(ArtifactFetchError):
        await _store(FakeBackend()).fetch("card.onnx", tmp_path)


@pytest.mark.asyncio
async def test_refresh_manifest_deletes_local_copy(tmp_path: Path) -> None:
    (tmp_path / MANIFEST_NAME).write_text("{}", encoding="utf-8")
    store = _store(FakeBackend())

    await store.refresh_manifest(tmp_path)

    assert not (tmp_path / MANIFEST_NAME).exists()


@pytest.mark.asyncio
async def test_aclose_closes_backend() -> None:
    backend = FakeBackend()
    await _store(backend).aclose()
    assert backend.closed is True
