# backend/gdd_studio/main.py
import os

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from gdd_studio.gdd_api import router as gdd_router

app = FastAPI(title="gdd_studio")
static_path = os.path.join(os.path.dirname(__file__), "static")

app.include_router(gdd_router, tags=["GDD"])


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


# Mounted last so the API routes above take precedence over the client UI.
app.mount("/", StaticFiles(directory=static_path, html=True), name="static")
