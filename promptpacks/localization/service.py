# promptpacks/localization/service.py
from __future__ import annotations
import logging
import re
import threading
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

from promptpacks.core.errors import IntegrityError, MalformedPackError
from promptpacks.packs.loaders import parseJsonObject, readVerified
from promptpacks.security.verifier import IntegrityVerifier
from promptpacks.sync.install import ARTIFACT_EXT

logger = logging.getLogger(__name__)

__all__ = ["BUILTIN_ENGLISH", "DEFAULT_LANGUAGE", "LocalizationSource", "LocalizationService", "bundleFileName"]

DEFAULT_LANGUAGE = "en"
_LANGUAGE_CODE = re.compile(r"^[A-Za-z]{2,3}(?:[-_][A-Za-z0-9]{2,8})*$")

BUILTIN_ENGLISH: Mapping[str, str] = MappingProxyType({
    "Status.Ready": "Ready",
    "Status.Cooldown": "Cooldown…",
    "Status.CaptureRegion": "Capture a region…",
    "Status.Canceled": "Canceled",
    "Status.GenericError": "Something went wrong.",
    "Status.PacksUpdated": "Game packs updated.",
    "Status.SyncFailed": "Could not reach the pack server; using installed packs.",
    "Dialog.NoQuery.Title": "No query",
    "Dialog.NoQuery.Body": "No tutorial query yet. Run a request first.",
    "Dialog.AIError.Title": "AI Error",
    "Dialog.AIError.Body": "The AI returned an error.\n\n{DETAILS}",
    "Dialog.LanguageChanged.Title": "Language updated",
    "Dialog.LanguageChanged.Body": "Restart the app to see all texts in the new language.",
    "Shortcuts.Title": "Shortcuts",
    "Shortcuts.ActiveGame": "Active game: {GAME}",
    "Menu.Language": "Language",
    "Menu.Language.En": "English (Recommended)",
    "Text.ExpandAll": "Expand all",
    "Text.CollapseAll": "Collapse all",
})



def bundleFileName(language: str) -> str:
    return f"strings.{language}{ARTIFACT_EXT}"



@dataclass(frozen=True)
class LocalizationSource:
    language: str
    origin: str                 # "user" | "bundled" | "builtin"
    path: Path | None = None



class LocalizationService:
    """
    Signed string tables: strings.<lang>.gpack from the user dir, then the
    bundled dir, else built-in English. The table is swapped as a whole.
    """

    def __init__(self, userDir: Path, bundledDir: Path, verifier: IntegrityVerifier) -> None:
        self.userDir = Path(userDir)
        self.bundledDir = Path(bundledDir)
        self.verifier = verifier

        self._lock = threading.Lock()
        self._strings: Mapping[str, str] = BUILTIN_ENGLISH
        self._source = LocalizationSource(DEFAULT_LANGUAGE, "builtin")
        self._requested = DEFAULT_LANGUAGE

    # ----- Loading -----

    def load(self, language: str | None) -> LocalizationSource:
        requested = (language or "").strip() or DEFAULT_LANGUAGE
        if not _LANGUAGE_CODE.match(requested):
            logger.warning("Ignoring invalid language code %r; using '%s'", requested, DEFAULT_LANGUAGE)
            requested = DEFAULT_LANGUAGE
        self._requested = requested

        for origin, directory in (("user", self.userDir), ("bundled", self.bundledDir)):
            path = directory / bundleFileName(requested)
            if not path.is_file():
                continue
            try:
                table = self._readTable(path)
            except (IntegrityError, MalformedPackError) as err:
                logger.warning("Ignoring %s localization '%s': %s", origin, path, err)
                continue
            source = LocalizationSource(requested, origin, path)
            self._swap(MappingProxyType(table), source)
            logger.info("Loaded %d '%s' strings from %s", len(table), requested, path)
            return source

        if requested != DEFAULT_LANGUAGE:
            logger.info("No usable '%s' strings; falling back to built-in English", requested)
        source = LocalizationSource(DEFAULT_LANGUAGE, "builtin")
        self._swap(BUILTIN_ENGLISH, source)
        return source

    def reload(self) -> LocalizationSource:
        return self.load(self._requested)

    def _readTable(self, path: Path) -> dict[str, str]:
        data = readVerified(path, self.verifier)
        doc = parseJsonObject(data, source=path.name)
        if not doc:
            raise MalformedPackError(f"'{path.name}' has no strings", source=path.name)
        bad = [key for key, value in doc.items() if not isinstance(value, str)]
        if bad:
            raise MalformedPackError(f"'{path.name}' has non-string values for {', '.join(bad[:5])}", source=path.name)
        return dict(doc)

    def _swap(self, table: Mapping[str, str], source: LocalizationSource) -> None:
        with self._lock:
            self._strings = table
            self._source = source

    # ----- Lookup -----

    @property
    def currentLanguage(self) -> str:
        with self._lock:
            return self._source.language

    @property
    def source(self) -> LocalizationSource:
        with self._lock:
            return self._source

    def t(self, key: str) -> str:
        """Translated text; English for keys the table lacks; the key itself when unknown everywhere."""
        with self._lock:
            table = self._strings
        value = table.get(key)
        if value is None:
            value = BUILTIN_ENGLISH.get(key, key)
        return value

    def tWith(self, key: str, placeholder: str, value: str | None) -> str:
        return self.t(key).replace(placeholder, value or "")
