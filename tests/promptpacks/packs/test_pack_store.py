# tests/promptpacks/packs/test_pack_store.py
from __future__ import annotations
import json

import pytest

from promptpacks.core.errors import IntegrityError, MalformedPackError
from promptpacks.packs.models import GENERAL_GAME_ID
from promptpacks.packs.resolver import resolvePack
from promptpacks.packs.store import PackStore


@pytest.fixture()
def dirs(tmp_path):
    machine = tmp_path / "machine"
    user = tmp_path / "user"
    machine.mkdir()
    user.mkdir()
    return machine, user


@pytest.fixture()
def store(dirs, verifier) -> PackStore:
    return PackStore(list(dirs), verifier, maxCategories=3)


def test_empty_directories_still_have_general(store) -> None:
    report = store.load()
    snapshot = store.snapshot()
    assert snapshot.gameIds == [GENERAL_GAME_ID]
    assert snapshot.general.categories == {}
    assert report.builtInGeneral


def test_missing_directory_is_not_an_error(tmp_path, verifier) -> None:
    store = PackStore([tmp_path / "nope"], verifier)
    report = store.load()
    assert report.rejected == []
    assert store.snapshot().gameIds == [GENERAL_GAME_ID]


def test_loads_in_directory_then_file_name_order(store, dirs, write_pack) -> None:
    machine, user = dirs
    write_pack(user, "a_user", "UserGame")
    write_pack(machine, "b_machine", "Second")
    write_pack(machine, "a_machine", "First")

    store.load()

    assert store.snapshot().gameIds == ["First", "Second", "UserGame", GENERAL_GAME_ID]


def test_user_pack_overrides_machine_pack_in_place(store, dirs, write_pack) -> None:
    machine, user = dirs
    write_pack(machine, "a", "Alpha", matchers=["old"])
    write_pack(machine, "b", "Beta")
    write_pack(user, "alpha_v2", "alpha", matchers=["new"])

    report = store.load()
    snapshot = store.snapshot()

    assert snapshot.gameIds == ["alpha", "Beta", GENERAL_GAME_ID]
    assert snapshot.packs[0].matchers == ["new"]
    assert [gameId for gameId, _ in report.overridden] == ["Alpha"]


def test_registration_order_stable_across_reloads(store, dirs, write_pack) -> None:
    machine, user = dirs
    write_pack(machine, "1", "Zeta", matchers=["shared"])
    write_pack(machine, "2", "Alpha", matchers=["shared"])

    first = store.load()
    order = store.snapshot().gameIds
    for _ in range(3):
        store.load()
        assert store.snapshot().gameIds == order
        assert resolvePack(store.snapshot(), "shared window").gameId == "Zeta"
    assert first.loadedIds == ["Zeta", "Alpha"]


def test_generation_bumps_per_load(store) -> None:
    store.load()
    first = store.snapshot().generation
    store.load()
    assert store.snapshot().generation == first + 1


def test_snapshot_held_by_reader_is_not_mutated(store, dirs, write_pack) -> None:
    machine, _ = dirs
    store.load()
    before = store.snapshot()
    write_pack(machine, "x", "NewGame")
    store.load()
    assert before.gameIds == [GENERAL_GAME_ID]
    assert "NewGame" in store.snapshot().gameIds

# ----------------------------
# Rejection
# ----------------------------

def test_missing_signature_is_rejected(store, dirs, write_pack) -> None:
    machine, _ = dirs
    artifact = write_pack(machine, "nosig", "NoSig")
    artifact.with_suffix(".sig").unlink()
    write_pack(machine, "ok", "Good")

    report = store.load()

    assert store.snapshot().gameIds == ["Good", GENERAL_GAME_ID]
    assert len(report.rejected) == 1
    assert isinstance(report.rejected[0].error, IntegrityError)


def test_wrong_key_signature_is_rejected(store, dirs, write_pack, other_key) -> None:
    machine, _ = dirs
    write_pack(machine, "forged", "Forged", key=other_key)
    report = store.load()
    assert "Forged" not in store.snapshot().gameIds
    assert isinstance(report.rejected[0].error, IntegrityError)


def test_tampered_body_is_rejected(store, dirs, write_pack) -> None:
    machine, _ = dirs
    artifact = write_pack(machine, "t", "Tampered")
    artifact.write_bytes(artifact.read_bytes().replace(b"Tampered", b"Tempered"))
    store.load()
    assert store.snapshot().gameIds == [GENERAL_GAME_ID]


@pytest.mark.parametrize("body", [
    b"{not json",
    b"[1, 2, 3]",
    json.dumps({"version": "1.0.0", "categories": {}}).encode(),
    json.dumps({"gameId": "   "}).encode(),
])
def test_malformed_bodies_are_rejected_after_verification(store, dirs, write_signed, body) -> None:
    machine, _ = dirs
    write_signed(machine, "bad", body)
    report = store.load()
    assert store.snapshot().gameIds == [GENERAL_GAME_ID]
    assert isinstance(report.rejected[0].error, MalformedPackError)


def test_oversized_artifact_rejected_before_reading(dirs, write_signed, signing_key) -> None:
    from promptpacks.security.verifier import IntegrityVerifier
    machine, _ = dirs
    write_signed(machine, "big", b"{" + b" " * 4096 + b"}")
    store = PackStore([machine], IntegrityVerifier(signing_key.public_key(), maxBytes=1024))
    report = store.load()
    assert isinstance(report.rejected[0].error, IntegrityError)

# ----------------------------
# Categories and General
# ----------------------------

def test_categories_are_truncated_in_declaration_order(store, dirs, write_pack) -> None:
    machine, _ = dirs
    categories = {f"C{i}": {"label": f"Category {i}", "template": "t"} for i in range(5)}
    write_pack(machine, "many", "Many", categories=categories)
    store.load()
    pack = store.snapshot().get("Many")
    assert list(pack.categories) == ["C0", "C1", "C2"]


def test_real_general_pack_replaces_builtin_and_is_not_duplicated(store, dirs, write_pack) -> None:
    machine, _ = dirs
    write_pack(machine, "general", "general", categories={"Tips": {"label": "Tips", "template": "Give tips"}})
    write_pack(machine, "other", "Other")

    report = store.load()
    snapshot = store.snapshot()

    assert snapshot.gameIds == [GENERAL_GAME_ID, "Other"]
    assert snapshot.general.findCategory("Tips") is not None
    assert resolvePack(snapshot, "unknown window") is snapshot.general
    assert not report.builtInGeneral


def test_ytTemplate_alias_is_accepted(store, dirs, write_pack) -> None:
    machine, _ = dirs
    write_pack(machine, "yt", "Legacy", categories={"Quests": {"template": "q", "ytTemplate": "<Quest> guide"}})
    store.load()
    _, category = store.snapshot().get("Legacy").findCategory("Quests")
    assert category.secondaryQueryTemplate == "<Quest> guide"
