# -*- coding: utf-8 -*-
"""
Configuração do banco de dados SQLAlchemy para a aplicação FastAPI.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from academy_api import config

DATABASE_URL = config.DATABASE_URL


def build_engine(url):
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}

    # pool_pre_ping: avoids "SSL connection closed" on managed Postgres
    return create_engine(
        url,
        connect_args=connect_args,
        pool_pre_ping=True,
        pool_recycle=3600,
    )


engine = build_engine(DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def init_db(bind=None):
    """Create all tables. Importing the models package registers them on Base."""
    from academy_api import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


# Função para obter uma sessão do banco de dados (usada com Depends)
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
