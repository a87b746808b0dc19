from collections.abc import Iterator

from sqlmodel import Session, SQLModel, create_engine

from callback_tracker.core.config import settings

engine = create_engine(settings.database_url, pool_pre_ping=True)


def init_db() -> None:
    # import for side effects: registers the tables on SQLModel.metadata
    import callback_tracker.models  # noqa: F401

    SQLModel.metadata.create_all(engine)


def get_session() -> Iterator[Session]:
    with Session(engine) as session:
        yield session
