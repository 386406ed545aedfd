from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import OperationalError
from sqlmodel import Session, SQLModel, create_engine

import eyecare.db.base  # noqa: F401
from eyecare.core.exceptions import StorageUnavailable
from eyecare.core.logging_setup import logger


class Database:
    """Explicit handle over the local SQLite engine.

    Nothing is connected until ``open()`` is called; ``close()`` disposes the
    engine. Consumers receive the handle by injection.
    """

    def __init__(self, database_url: str, *, echo: bool = False) -> None:
        self.database_url = database_url
        self.echo = echo
        self._engine: Engine | None = None

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise StorageUnavailable("Database is not open")
        return self._engine

    def open(self) -> "Database":
        if self._engine is not None:
            return self
        connect_args: dict[str, Any] = {}
        if self.database_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
            self._ensure_sqlite_directory()
        engine = create_engine(
            self.database_url,
            echo=self.echo,
            connect_args=connect_args,
        )
        try:
            SQLModel.metadata.create_all(bind=engine)
        except OperationalError as exc:
            engine.dispose()
            logger.error("Falha ao abrir banco %s: %s", self.database_url, exc)
            raise StorageUnavailable(f"Storage unavailable: {exc.orig}") from exc
        self._engine = engine
        logger.info("Banco aberto: %s", self.database_url)
        return self

    def close(self) -> None:
        if self._engine is None:
            return
        self._engine.dispose()
        self._engine = None
        logger.info("Banco fechado: %s", self.database_url)

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        with Session(self.engine, expire_on_commit=False) as session:
            yield session

    def _ensure_sqlite_directory(self) -> None:
        database = make_url(self.database_url).database
        if not database or database == ":memory:":
            return
        Path(database).expanduser().parent.mkdir(parents=True, exist_ok=True)

    def __enter__(self) -> "Database":
        return self.open()

    def __exit__(self, *exc_info: object) -> None:
        self.close()
