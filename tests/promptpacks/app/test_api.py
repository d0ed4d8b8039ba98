# tests/promptpacks/app/test_api.py
from __future__ import annotations

import json5
import pytest
from fastapi.testclient import TestClient

from promptpacks.app.factory import createApp
from promptpacks.app.runtime import PackRuntime
from promptpacks.config.service import ConfigService
from promptpacks.packs.models import GENERAL_GAME_ID
from promptpacks.packs.templates import PREAMBLE

TARKOV_CATEGORIES = {
    "GunMods": {
        "label": "Gun Mods",
        "hotkey": "Ctrl+Alt+G",
        "template": "Give weapon mod advice",
        "secondaryQueryTemplate": "<WeaponBase> build",
    },
    "Quests": {"label": "Quests", "hotkey": "Ctrl+Alt+Q", "template": "Explain the quest"},
}


@pytest.fixture()
def client(runtime, roots, write_pack):
    write_pack(roots.machinePacksDir, "tarkov", "EscapeFromTarkov", matchers=["Escape from Tarkov"], categories=TARKOV_CATEGORIES)
    app = createApp(runtime, autoSync=False)
    with TestClient(app) as testClient:
        yield testClient


def test_health(client) -> None:
    res = client.get("/health")
    assert res.status_code == 200
    body = res.json()
    assert body["ok"] is True
    assert body["packs"] == ["EscapeFromTarkov", GENERAL_GAME_ID]
    assert body["language"] == "en"
    assert body["syncRunning"] is False
    assert body["lastSync"] is None


def test_prompt(client) -> None:
    res = client.post("/prompt", json={"title": "EscapeFromTarkov.exe - Live", "category": "Gun Mods", "ocrSnippet": "M4A1"})
    body = res.json()
    assert body["gameId"] == "EscapeFromTarkov"
    assert body["prompt"].startswith(PREAMBLE)
    assert "Category: Gun Mods\n\nGive weapon mod advice\n" in body["prompt"]
    assert body["prompt"].endswith('OCR: "M4A1"\n')


def test_prompt_for_unknown_window(client) -> None:
    body = client.post("/prompt", json={"title": "", "category": "Anything"}).json()
    assert body["gameId"] == GENERAL_GAME_ID
    assert "Category: Anything" in body["prompt"]


def test_capabilities(client) -> None:
    body = client.get("/capabilities", params={"title": "Escape from Tarkov"}).json()
    assert body["gameName"] == "EscapeFromTarkov"
    assert [item["hotkeyText"] for item in body["shortcuts"]] == ["Ctrl+Alt+G", "Ctrl+Alt+Q"]


def test_capabilities_without_title(client) -> None:
    body = client.get("/capabilities").json()
    assert body == {"gameName": GENERAL_GAME_ID, "version": "1.0.0", "shortcuts": []}


def test_secondary_query_from_pack(client) -> None:
    body = client.post(
        "/secondary-query",
        json={"title": "Escape from Tarkov", "categoryId": "GunMods", "responseText": "**Weapon:** AK-74"},
    ).json()
    assert body == {"query": "AK-74 build", "searchQuery": "AK-74 build", "fromPack": True}


def test_secondary_query_falls_back(client) -> None:
    body = client.post(
        "/secondary-query",
        json={"title": "Escape from Tarkov", "categoryId": "Quests", "responseText": "Talk to Prapor first."},
    ).json()
    assert body["fromPack"] is False
    assert body["query"] is None
    assert body["searchQuery"] == "Talk to Prapor first."


def test_sync_endpoint_installs_and_reloads(client, remote, pack_body) -> None:
    remote.publish("ArcRaiders", pack_body("ArcRaiders", matchers=["Arc Raiders"]))

    report = client.post("/sync").json()

    assert report["installed"] == 1 and report["changed"] is True
    assert report["outcomes"][0]["status"] == "installed"
    health = client.get("/health").json()
    assert health["packs"] == ["EscapeFromTarkov", "ArcRaiders", GENERAL_GAME_ID]
    assert health["lastSync"]["cycleId"] == report["cycleId"]


def test_sync_endpoint_reports_index_failure(client, remote) -> None:
    remote.indexStatus = 500
    report = client.post("/sync").json()
    assert report["indexError"]["type"] == "HTTPError"
    assert report["installed"] == 0


def test_strings(client) -> None:
    assert client.get("/strings/Status.Ready").json() == {"key": "Status.Ready", "value": "Ready", "language": "en"}
    assert client.get("/strings/Unknown.Key").json()["value"] == "Unknown.Key"

# ----------------------------
# Settings
# ----------------------------

def test_get_settings(client, remote) -> None:
    body = client.get("/settings").json()
    assert body["values"]["sync"]["baseUrl"] == remote.BASE
    assert body["values"]["limits"]["maxCategories"] == 16


def test_update_setting_runtime_layer(client) -> None:
    res = client.post("/settings", json={"key": "sync.intervalHours", "value": 12})
    assert res.status_code == 200
    assert res.json() == {"key": "sync.intervalHours", "value": 12, "restartRequired": True}
    assert client.get("/settings").json()["values"]["sync"]["intervalHours"] == 12


def test_update_setting_rejects_invalid_value(client) -> None:
    res = client.post("/settings", json={"key": "sync.timeoutMs", "value": "soon"})
    assert res.status_code == 422
    assert client.get("/settings").json()["values"]["sync"]["timeoutMs"] == 20000


def test_update_setting_persists_to_user_file(tmp_path, build_runtime, remote) -> None:
    config = ConfigService.bootstrap(userBase=tmp_path / "cfg", overrides={"sync.baseUrl": remote.BASE})
    app = createApp(build_runtime(config=config), autoSync=False)

    with TestClient(app) as client:
        res = client.post("/settings", json={"key": "prompt.ocrCharCap", "value": 50, "persist": True})

    assert res.status_code == 200
    saved = json5.loads(config.settingsFile.read_text(encoding="utf-8"))
    assert saved == {"prompt": {"ocrCharCap": 50}}


def test_settings_without_config_store(roots, signing_key) -> None:
    settings = ConfigService.fromDict({}).settings()
    runtime = PackRuntime.build(settings=settings, roots=roots, publicKey=signing_key.public_key())
    with TestClient(createApp(runtime, autoSync=False)) as client:
        assert client.get("/settings").json()["values"]["maxCategories"] == 16
        assert client.post("/settings", json={"key": "sync.intervalHours", "value": 1}).status_code == 409
