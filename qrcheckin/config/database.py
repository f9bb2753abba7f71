import contextlib
import sys
from collections.abc import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from qrcheckin.config.settings import settings


def create_engine(url: str, **kwargs):
    url = str(url)
    use_echo = settings.log_db
    connect_args = {}
    if "sqlite" in url:
        connect_args = {"timeout": 15}
    return create_async_engine(
        url,
        echo=use_echo,
        future=True,  # use the sqlalchemy 2.0 classes
        connect_args=connect_args,
        **kwargs,
    )


def generate_test_db_dsn(dsn: str) -> str:
    part_dsn, db_name = str(dsn).rsplit("/", 1)
    return f"{part_dsn}/test_{db_name}"


engine = create_engine(settings.database_url)
if "pytest" in sys.modules:
    # every test runs in its own event loop, pooled connections must not outlive it
    engine = create_engine(generate_test_db_dsn(settings.database_url), poolclass=NullPool)


async_session_maker = async_sessionmaker(engine, expire_on_commit=False)


async def get_async_session() -> AsyncIterator[AsyncSession]:
    async with async_session_maker() as session:
        yield session


@contextlib.asynccontextmanager
async def async_session_manager(
    auto_commit=True, session_overwrite: AsyncSession | None = None
) -> AsyncIterator[AsyncSession]:
    if session_overwrite:
        yield session_overwrite
    else:
        async with async_session_maker() as session:
            try:
                yield session
            except Exception as e:
                await session.rollback()
                raise e
            else:
                if auto_commit:
                    await session.commit()
