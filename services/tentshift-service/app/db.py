from shared.database import Base, get_engine, get_session

from .config import DATABASE_URL, DATABASE_ECHO

engine = get_engine(DATABASE_URL, echo=DATABASE_ECHO)
SessionLocal = get_session(engine)

__all__ = ["Base", "engine", "SessionLocal", "get_db"]


async def get_db():
    async with SessionLocal() as session:
        yield session
