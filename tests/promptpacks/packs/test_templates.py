# tests/promptpacks/packs/test_templates.py
from __future__ import annotations

import pytest

from promptpacks.packs.models import Category, Pack
from promptpacks.packs.templates import (
    PREAMBLE,
    QueryStatus,
    TemplateEngine,
    extractTokenValue,
    renderPrompt,
    renderSecondaryQuery,
    synthesizeFallbackQuery,
)


@pytest.fixture()
def tarkov() -> Pack:
    return Pack(
        gameId="EscapeFromTarkov",
        matchers=["Escape from Tarkov"],
        categories={
            "GunMods": Category(
                label="Gun Mods",
                hotkey="Ctrl+Alt+G",
                template="Give weapon mod advice",
                secondaryQueryTemplate="<WeaponBase> build",
            ),
            "Quests": Category(label="", template="  Explain the quest.  ", secondaryQueryTemplate="{Game} <Quest> guide"),
            "Loot": Category(label="Loot", template="Price it"),
        },
    )

# ----------------------------
# Prompts
# ----------------------------

def test_prompt_layout(tarkov) -> None:
    text = renderPrompt(tarkov, "GunMods")
    assert text == (
        f"{PREAMBLE}\n"
        "Game: EscapeFromTarkov\n"
        "Category: Gun Mods\n"
        "\n"
        "Give weapon mod advice\n"
    )


def test_prompt_uses_category_id_when_label_blank(tarkov) -> None:
    lines = renderPrompt(tarkov, "Quests").splitlines()
    assert lines[2] == "Category: Quests"
    assert lines[4] == "Explain the quest."


def test_prompt_appends_capped_ocr(tarkov) -> None:
    text = TemplateEngine(ocrCharCap=5).renderPrompt(tarkov, "GunMods", "ABCDEFGHIJ")
    assert text.endswith('\n\nOCR: "ABCDE"\n')


def test_blank_ocr_is_omitted(tarkov) -> None:
    assert "OCR:" not in renderPrompt(tarkov, "GunMods", "   ")


def test_unknown_category_gives_header_only_prompt(tarkov) -> None:
    text = renderPrompt(tarkov, "Nope", "seen text")
    assert text == f'{PREAMBLE}\nGame: EscapeFromTarkov\nCategory: Nope\n\nOCR: "seen text"\n'


def test_category_lookup_falls_back_to_case_insensitive(tarkov) -> None:
    assert "Give weapon mod advice" in renderPrompt(tarkov, "gunmods")

# ----------------------------
# Secondary queries
# ----------------------------

def test_base_suffix_resolves_against_shorter_heading(tarkov) -> None:
    query = renderSecondaryQuery(tarkov, "GunMods", "Here you go.\n**Weapon:** AK-74\n**Price:** 30k")
    assert query.status is QueryStatus.RENDERED
    assert query.text == "AK-74 build"


def test_extracted_value_is_not_rescanned_for_placeholders() -> None:
    pack = Pack(gameId="EscapeFromTarkov", categories={"Compare": Category(template="x", secondaryQueryTemplate="<Weapon> vs <Item>")})
    query = renderSecondaryQuery(pack, "Compare", "**Weapon:** <Item> rifle\n**Item:** LEDX")
    assert query.text == "<Item> rifle vs LEDX"


@pytest.mark.parametrize("response", ["**Weapon:** *AK-74*", "**Weapon:** _AK-74_", "**Weapon:** ***AK-74***"])
def test_italic_markers_are_stripped(tarkov, response) -> None:
    assert renderSecondaryQuery(tarkov, "GunMods", response).text == "AK-74 build"


def test_lone_markers_survive_cleaning() -> None:
    assert synthesizeFallbackQuery("X", "5 * 3 damage with armor_class 4") == "5 * 3 damage with armor_class 4"


def test_unsatisfiable_without_any_heading(tarkov) -> None:
    query = renderSecondaryQuery(tarkov, "Quests", "The quest is given by Prapor in Customs.")
    assert query.status is QueryStatus.UNSATISFIED
    assert query.unresolved == ("<Quest>",)
    assert not query.ok


def test_generic_first_heading_is_last_resort(tarkov) -> None:
    query = renderSecondaryQuery(tarkov, "Quests", "**Task name:** Debut\n**Giver:** Prapor")
    assert query.text == "EscapeFromTarkov Debut guide"


def test_game_and_category_are_substituted() -> None:
    pack = Pack(gameId="ArcRaiders", categories={"Loot": Category(label="Loot Item", template="x", secondaryQueryTemplate="{Game} {Category} tier list")})
    assert renderSecondaryQuery(pack, "Loot", "").text == "ArcRaiders Loot Item tier list"


@pytest.mark.parametrize("categoryId", ["Loot", "Missing", ""])
def test_no_template(tarkov, categoryId) -> None:
    assert renderSecondaryQuery(tarkov, categoryId, "**Item:** LEDX").status is QueryStatus.NO_TEMPLATE


def test_extracted_values_are_cleaned() -> None:
    assert extractTokenValue("Item", "**Item: ** __LEDX__   Skin  Transilluminator") == "LEDX Skin Transilluminator"


def test_synonym_table() -> None:
    assert extractTokenValue("KeyCard", "**Key/Card:** Red Keycard") == "Red Keycard"


def test_blank_response_extracts_nothing() -> None:
    assert extractTokenValue("Quest", "  ") is None

# ----------------------------
# Fallback queries
# ----------------------------

def test_fallback_prefers_explicit_query_line() -> None:
    text = "Some answer\nSEARCH_QUERY: \"tarkov **best** ak build\"\n"
    assert synthesizeFallbackQuery("EscapeFromTarkov", text) == "tarkov best ak build"


def test_fallback_uses_first_non_blank_line() -> None:
    assert synthesizeFallbackQuery("X", "\n\n  **Bold** first line \nsecond") == "Bold first line"


@pytest.mark.parametrize("game, expected", [("ArcRaiders", "ArcRaiders guide"), ("", "game guide"), (None, "game guide")])
def test_fallback_without_response(game, expected) -> None:
    assert synthesizeFallbackQuery(game, "") == expected
