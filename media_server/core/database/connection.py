# File: media_server/core/database/connection.py

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker


def create_db_engine(database_url: str) -> Engine:
    # check_same_thread=False is needed for SQLite: sessions are opened from worker threads
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}

    return create_engine(
        database_url,
        echo=False,
        pool_pre_ping=True,
        connect_args=connect_args
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)
