"""
FastAPI application exposing the shared deck collection.
"""

import logging
from pathlib import Path
from typing import Any, Union

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..constants import DECKS_ENDPOINT, HEALTH_ENDPOINT
from .storage import DeckFileStore

logger = logging.getLogger(__name__)

_INVALID_BODY = object()


async def _json_body(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError:
        return _INVALID_BODY


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def create_app(data_file: Union[str, Path]) -> FastAPI:
    """
    Build the backend app persisting decks to data_file.

    Routes:
        GET  /api/decks       full collection (JSON array)
        POST /api/decks       replace the collection; body must be an array
        PUT  /api/decks/{id}  shallow-merge an object into one deck
        GET  /api/health      liveness check
    """
    store = DeckFileStore(data_file)
    app = FastAPI(title="MindDeck", docs_url=None, redoc_url=None)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.deck_store = store

    @app.get(DECKS_ENDPOINT)
    def list_decks():
        return store.read()

    @app.post(DECKS_ENDPOINT)
    async def replace_decks(request: Request):
        body = await _json_body(request)
        if not isinstance(body, list):
            return _error(400, "expected array")
        await run_in_threadpool(store.replace, body)
        return {"ok": True}

    # Ids are arbitrary text, so a decoded id may contain "/".
    @app.put(DECKS_ENDPOINT + "/{deck_id:path}")
    async def update_deck(deck_id: str, request: Request):
        body = await _json_body(request)
        if not isinstance(body, dict):
            return _error(400, "expected object")
        if not await run_in_threadpool(store.update_deck, deck_id, body):
            return _error(404, "deck not found")
        return {"ok": True}

    @app.get(HEALTH_ENDPOINT)
    def health():
        return {"ok": True}

    logger.info(f"MindDeck backend storing decks in {store.path}")
    return app
