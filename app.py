import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, ValidationError

from config import config
from db import SettingsDatabase
from models import AppSettings, Theme, ThemePreference, UsageState
from presentation import PanelState, PopoverView, build_popover
from refresh import UsageRefreshController
from settings_store import SettingsStore
from sources.appearance import SystemAppearance
from sources.changes import ChangeChannel
from sources.snapshot import HttpSnapshotSource
from theme import ThemeResolver

log = logging.getLogger(__name__)


class SettingsPatch(BaseModel):
    refresh_interval_secs: int | None = None
    window_hours: float | None = None
    usage_limit_tokens: int | None = None
    theme: ThemePreference | None = None


class ThemeView(BaseModel):
    preference: ThemePreference
    theme: Theme


class AppearanceUpdate(BaseModel):
    dark: bool


def make_fetch():
    return HttpSnapshotSource().fetch


def make_backend():
    return SettingsDatabase()


def make_appearance():
    return SystemAppearance()


@asynccontextmanager
async def lifespan(app: FastAPI):
    store = SettingsStore(make_backend())
    settings = await store.load()

    changes = ChangeChannel()
    appearance = make_appearance()
    resolver = ThemeResolver(appearance, settings.theme)
    controller = UsageRefreshController(
        make_fetch(), changes, settings.refresh_interval_secs, settings.window_hours
    )

    def on_settings(updated: AppSettings) -> None:
        controller.set_interval(updated.refresh_interval_secs)
        controller.set_window_hours(updated.window_hours)
        resolver.set_preference(updated.theme)

    store.subscribe(on_settings)
    controller.start()

    app.state.store = store
    app.state.changes = changes
    app.state.appearance = appearance
    app.state.resolver = resolver
    app.state.controller = controller
    app.state.panel = PanelState()
    log.info("Usage pulse started, polling every %ss", settings.refresh_interval_secs)

    yield

    controller.dispose()
    resolver.dispose()
    await controller.wait_idle()
    await store.flush()


app = FastAPI(title="Usage Pulse", lifespan=lifespan)


def _theme_view() -> ThemeView:
    resolver = app.state.resolver
    return ThemeView(preference=resolver.preference, theme=resolver.theme)


@app.get("/api/usage", response_model=UsageState)
async def usage():
    return app.state.controller.view()


@app.post("/api/refresh", response_model=UsageState)
async def refresh():
    controller = app.state.controller
    await controller.refresh()
    return controller.view()


@app.get("/api/popover", response_model=PopoverView)
async def popover():
    controller = app.state.controller
    if controller.snapshot is None:
        raise HTTPException(503, controller.error or "Loading usage data...")
    return build_popover(controller.snapshot, app.state.store.settings)


@app.get("/api/settings", response_model=AppSettings)
async def get_settings():
    return app.state.store.settings


@app.patch("/api/settings", response_model=AppSettings)
async def patch_settings(patch: SettingsPatch):
    try:
        return app.state.store.update_settings(patch.model_dump(exclude_unset=True))
    except ValidationError as exc:
        raise HTTPException(422, exc.errors(include_url=False, include_context=False))


@app.get("/api/theme", response_model=ThemeView)
async def theme():
    return _theme_view()


@app.put("/api/appearance", response_model=ThemeView)
async def appearance(update: AppearanceUpdate):
    app.state.appearance.set_dark(update.dark)
    return _theme_view()


@app.post("/api/notify", status_code=202)
async def notify():
    app.state.changes.notify()
    return {"status": "accepted"}


@app.get("/api/panel", response_model=PanelState)
async def panel():
    return app.state.panel


@app.post("/api/panel/open", response_model=PanelState)
async def open_panel():
    app.state.panel.open()
    return app.state.panel


@app.post("/api/panel/close", response_model=PanelState)
async def close_panel():
    app.state.panel.close()
    return app.state.panel


def run():
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(app, host=config.host, port=config.port)


if __name__ == "__main__":
    run()
