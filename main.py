# -*- coding: utf-8 -*-
"""
Arquivo principal da aplicação FastAPI: academias, turmas, reservas,
inscrições e pagamentos.
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import create_first_user
from academy_api import config, database
from academy_api.routes import (
    academies_fastapi,
    auth_fastapi,
    classes_fastapi,
    inscriptions_fastapi,
    memberships_fastapi,
    payments_fastapi,
    reservations_fastapi,
    users_fastapi,
)

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    filename=config.LOG_FILE,
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if config.DATABASE_URL.startswith("sqlite:///./"):
        Path("database").mkdir(exist_ok=True)

    # Cria as tabelas no banco de dados
    database.init_db()
    logger.info("Database tables ready.")

    create_first_user.create_first_user()
    yield


docs_url = "/docs" if not config.is_production() else None
redoc_url = "/redoc" if not config.is_production() else None

# Inicializa a aplicação FastAPI
app = FastAPI(
    title="Academy API",
    description="Multi-tenant academy backend: classes, reservation requests, inscriptions and payments",
    version="1.0.0",
    docs_url=docs_url,   # None em produção
    redoc_url=redoc_url,
    openapi_url="/openapi.json" if not config.is_production() else None,
    lifespan=lifespan,
)

origins = [
    config.FRONTEND_URL,
    "http://localhost:5700",
    "http://localhost",
    "http://localhost:8080",
    "http://127.0.0.1",
    "http://127.0.0.1:8080",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Montagem dos routers
app.include_router(auth_fastapi.router)
app.include_router(users_fastapi.router)
app.include_router(academies_fastapi.router, prefix="/api/v1/academies")
app.include_router(classes_fastapi.router, prefix="/api/v1/classes")
app.include_router(memberships_fastapi.router, prefix="/api/v1/memberships")
app.include_router(reservations_fastapi.router, prefix="/api/v1/reservation-requests")
app.include_router(inscriptions_fastapi.router, prefix="/api/v1/inscriptions")
app.include_router(payments_fastapi.router, prefix="/api/v1/payments")


@app.get("/", tags=["Root"])
async def read_root():
    return {"message": "Academy API", "version": "1.0.0"}


@app.get("/health", tags=["Root"])
async def health_check():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=not config.is_production())
