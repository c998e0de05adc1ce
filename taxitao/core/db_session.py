from contextlib import contextmanager
from typing import Annotated, Generator, Iterator
from fastapi import Depends
from sqlmodel import Session
from .db_config import engine


def get_db() -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


@contextmanager
def session_scope() -> Iterator[Session]:
    """Session for work outside a request cycle, e.g. websocket polls."""
    with Session(engine) as session:
        yield session


SessionDep = Annotated[Session, Depends(get_db)]
