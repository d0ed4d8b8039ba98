# promptpacks/packs/models.py
from __future__ import annotations
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

__all__ = [
    "GENERAL_GAME_ID",
    "Category",
    "Pack",
    "ShortcutCapability",
    "GameCapabilities",
    "makeGeneralPack",
    "capabilitiesOf",
]

GENERAL_GAME_ID = "General"



class Category(BaseModel):
    """One hotkey-triggered prompt within a pack."""
    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    label: str = ""
    hotkey: str = ""                # display-only, e.g. "Ctrl+Alt+G"
    template: str = ""              # body without the Game/Category header
    secondaryQueryTemplate: str | None = Field(
        default=None,
        validation_alias=AliasChoices("secondaryQueryTemplate", "ytTemplate"),
    )

    @field_validator("label", "hotkey", "template", mode="before")
    @classmethod
    def noneToEmpty(cls, value: Any) -> Any:
        return "" if value is None else value

    def displayLabel(self, categoryId: str) -> str:
        label = self.label.strip()
        return label if label else categoryId



class Pack(BaseModel):
    """A verified pack body. Replaced wholesale on reload, never mutated."""
    model_config = ConfigDict(extra="ignore", frozen=True)

    gameId: str
    version: str = "1.0.0"
    matchers: list[str] = Field(default_factory=list)
    categories: dict[str, Category] = Field(default_factory=dict)

    @field_validator("gameId")
    @classmethod
    def gameIdNotBlank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("gameId must not be blank")
        return value

    @field_validator("version", mode="before")
    @classmethod
    def versionToText(cls, value: Any) -> Any:
        if value is None:
            return "1.0.0"
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("matchers", "categories", mode="before")
    @classmethod
    def noneToEmpty(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            return [] if info.field_name == "matchers" else {}
        return value

    def findCategory(self, categoryId: str) -> tuple[str, Category] | None:
        """Exact id first, then case-insensitive in declaration order."""
        category = self.categories.get(categoryId)
        if category is not None:
            return categoryId, category
        folded = categoryId.casefold()
        for key, value in self.categories.items():
            if key.casefold() == folded:
                return key, value
        return None

    def truncated(self, maxCategories: int) -> "Pack":
        if len(self.categories) <= maxCategories:
            return self
        kept = dict(list(self.categories.items())[:max(0, maxCategories)])
        return self.model_copy(update={"categories": kept})



def makeGeneralPack() -> Pack:
    return Pack(gameId=GENERAL_GAME_ID, version="1.0.0", matchers=[], categories={})



# ----------------------------------------------
#        Read-only projections for the UI
# ----------------------------------------------

class ShortcutCapability(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    label: str
    hotkeyText: str = ""



class GameCapabilities(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    gameName: str
    version: str = "1.0.0"
    shortcuts: tuple[ShortcutCapability, ...] = ()



def capabilitiesOf(pack: Pack) -> GameCapabilities:
    """Derived per call; never cached, never handed out as a Pack."""
    return GameCapabilities(
        gameName=pack.gameId,
        version=pack.version,
        shortcuts=tuple(
            ShortcutCapability(id=key, label=category.displayLabel(key), hotkeyText=category.hotkey or "")
            for key, category in pack.categories.items()
        ),
    )
