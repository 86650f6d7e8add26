"""
Grocery List Recommendations API - FastAPI Main Entry

LOCAL:
    cd backend
    python -m uvicorn grocery_api.main:app --reload --host 0.0.0.0 --port 8000

    or simply:
    python -m grocery_api.main

TEST:
    curl -i http://127.0.0.1:8000/
    curl -i http://127.0.0.1:8000/health
    curl -i http://127.0.0.1:8000/version
    curl -i -X POST http://127.0.0.1:8000/v1/list-recommendations \\
        -H 'Content-Type: application/json' \\
        -d '{"list": [{"name": "milk"}], "offers": [{"product": "milk", "price": 2, "unit": "1L", "store": "A"}]}'

PRODUCTION:
    Build Command:
        pip install .

    Start Command:
        python -m uvicorn grocery_api.main:app --host 0.0.0.0 --port $PORT
"""
import logging

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from grocery_api.core.config import settings

# Routers
from grocery_api.api.routes_meta import router as meta_router
from grocery_api.api.routes_recommendations import router as recommendations_router

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)


def create_app() -> FastAPI:
    app = FastAPI(
        title="Grocery List Recommendations API",
        version=settings.APP_VERSION,
        description="Where to buy a shopping list: single store, cheapest per item, or fewest stores",
    )

    # The web client calls this from the browser
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    def root():
        return {
            "name": "Grocery List Recommendations API",
            "status": "ok",
            "docs": "/docs",
            "health": "/health",
            "version": "/version",
        }

    @app.get("/health")
    def health():
        return {"ok": True}

    app.include_router(meta_router)
    app.include_router(recommendations_router)

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
