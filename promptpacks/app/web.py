# promptpacks/app/web.py
from __future__ import annotations

import dataclasses
import time
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from promptpacks.app.runtime import PackRuntime
from promptpacks.core.errors import ConfigurationError

router = APIRouter()



def getRuntime(request: Request) -> PackRuntime:
    return request.app.state.runtime



class PromptRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: str = ""
    category: str = ""
    ocrSnippet: str | None = None



class SecondaryQueryRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: str = ""
    categoryId: str = ""
    responseText: str = ""



class SettingUpdate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    key: str = Field(min_length=1)
    value: Any = None
    persist: bool = False



@router.get("/health")
async def health(runtime: PackRuntime = Depends(getRuntime)):
    snapshot = runtime.store.snapshot()
    lastReport = runtime.syncEngine.lastReport
    return {
        "ok": True,
        "ts": int(time.time() * 1000),
        "packs": snapshot.gameIds,
        "generation": snapshot.generation,
        "language": runtime.localization.currentLanguage,
        "syncRunning": runtime.syncEngine.running,
        "lastSync": lastReport.toDict() if lastReport else None,
    }



@router.get("/settings")
async def getSettings(runtime: PackRuntime = Depends(getRuntime)):
    if runtime.config is not None:
        return JSONResponse(runtime.config.store.snapshot(), status_code=200)
    return JSONResponse({"values": dataclasses.asdict(runtime.settings)}, status_code=200)



@router.post("/settings")
async def updateSetting(body: SettingUpdate, runtime: PackRuntime = Depends(getRuntime)):
    """Validated write; takes effect on next start (the running components keep their wiring)."""
    if runtime.config is None:
        raise HTTPException(status_code=409, detail="Settings are not backed by a config store")
    store = runtime.config.store
    try:
        store.set(body.key, body.value, target="save" if body.persist else "runtime", actor="api")
    except (ConfigurationError, ValueError, KeyError, TypeError) as err:
        raise HTTPException(status_code=422, detail=str(err)) from err
    if body.persist:
        store.saveAll()
    return {"key": body.key, "value": store.get(body.key), "restartRequired": True}



@router.get("/capabilities")
async def capabilities(title: str = "", runtime: PackRuntime = Depends(getRuntime)):
    return runtime.provider.getActiveCapabilities(title).model_dump(by_alias=True)



@router.post("/prompt")
async def prompt(body: PromptRequest, runtime: PackRuntime = Depends(getRuntime)):
    provider = runtime.provider
    return {
        "gameId": provider.resolveGameId(body.title),
        "prompt": provider.getPrompt(body.title, body.category, body.ocrSnippet),
    }



@router.post("/secondary-query")
async def secondaryQuery(body: SecondaryQueryRequest, runtime: PackRuntime = Depends(getRuntime)):
    provider = runtime.provider
    fromPack = provider.tryBuildSecondaryQuery(body.title, body.categoryId, body.responseText)
    return {
        "query": fromPack,
        "searchQuery": fromPack or provider.buildSearchQuery(body.title, body.categoryId, body.responseText),
        "fromPack": fromPack is not None,
    }



@router.post("/sync")
async def syncNow(runtime: PackRuntime = Depends(getRuntime)):
    report = await runtime.syncNow()
    return report.toDict()



@router.get("/strings/{key}")
async def localizedString(key: str, runtime: PackRuntime = Depends(getRuntime)):
    return {
        "key": key,
        "value": runtime.localization.t(key),
        "language": runtime.localization.currentLanguage,
    }
