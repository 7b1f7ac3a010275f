import io
import json
import tarfile
from collections.abc import AsyncIterator
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient

from ygolookup.api.deps import Runtime, build_runtime, get_runtime
from ygolookup.config import DatasetPaths
from ygolookup.main import app


@pytest.fixture
def dataset_paths(tmp_path: Path) -> DatasetPaths:
    """Empty dataset root under a temporary directory."""
    return DatasetPaths(tmp_path / "cfg")


@pytest.fixture
def sample_cards() -> dict[str, dict]:
    """Sample card database entries keyed by card ID."""
    return {
        "89631139": {
            "name": "青眼白龙",
            "cardType": "monster",
            "frameType": "normal",
            "attribute": "LIGHT",
            "race": "龙族",
            "typeline": "【龙族/通常】",
            "level": 8,
            "atk": 3000,
            "def": 2500,
            "description": "以高攻击力著称的传说之龙。",
            "limit": [{"ocg": None}, {"tcg": None}, {"md": None}],
        },
        "46986414": {
            "name": "黑魔术师",
            "cardType": "monster",
            "frameType": "normal",
            "attribute": "dark",
            "race": "魔法师族",
            "level": 7,
            "atk": 2500,
            "def": 2100,
            "description": "魔法师之中攻击力·守备力都是最高位的魔法师。",
        },
        "55144522": {
            "name": "强欲之壶",
            "cardType": "spell",
            "frameType": "spell",
            "race": "normal",
            "description": "从卡组抽2张。",
            "limit": {"ocg": "forbidden", "tcg": "forbidden", "md": "forbidden"},
        },
        "1861629": {
            "name": "解码语者",
            "cardType": "monster",
            "frameType": "link",
            "attribute": "暗",
            "race": "电子界族",
            "atk": 2300,
            "linkVal": 3,
            "linkMarkers": ["top", "Bottom-Left", "右下"],
            "description": "效果怪兽2只以上",
        },
    }


@pytest.fixture
def sample_ban_lists() -> dict[str, dict]:
    return {
        "ocg": {"forbidden": [55144522], "limited": [46986414], "semi-limited": []},
        "tcg": {"forbidden": [55144522], "limited": [], "semi-limited": [89631139]},
    }


@pytest.fixture
def published_dataset(
    dataset_paths: DatasetPaths,
    sample_cards: dict[str, dict],
    sample_ban_lists: dict[str, dict],
) -> DatasetPaths:
    """A live dataset as left by a successful update."""
    for live in dataset_paths.live_dirs():
        live.mkdir(parents=True)
    dataset_paths.card_database.write_text(
        json.dumps(sample_cards, ensure_ascii=False), encoding="utf-8"
    )
    for card_id in ("89631139", "46986414"):
        (dataset_paths.images / f"{card_id}.jpg").write_bytes(b"\xff\xd8jpeg")
    for env, content in sample_ban_lists.items():
        (dataset_paths.limits / f"{env}.json").write_text(json.dumps(content), encoding="utf-8")
    return dataset_paths


def make_tar(members: dict[str, bytes], mode: str = "w:gz") -> bytes:
    """Build an in-memory tar archive."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode=mode) as tar:
        for name, content in members.items():
            info = tarfile.TarInfo(name)
            info.size = len(content)
            tar.addfile(info, io.BytesIO(content))
    return buffer.getvalue()


def snapshot(root: Path) -> dict[str, bytes]:
    """Relative path -> content of every file under root."""
    return {
        str(path.relative_to(root)): path.read_bytes()
        for path in sorted(root.rglob("*"))
        if path.is_file()
    }


@pytest.fixture
def runtime(published_dataset: DatasetPaths) -> Runtime:
    """Runtime pointed at the published sample dataset."""
    return build_runtime(published_dataset.root)


@pytest.fixture
async def client(runtime: Runtime) -> AsyncIterator[AsyncClient]:
    """Provide an async test client with the runtime overridden."""
    app.dependency_overrides[get_runtime] = lambda: runtime

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
