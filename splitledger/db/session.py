from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from splitledger.core.config import settings

engine = create_async_engine(settings.DATABASE_URL, echo=settings.SQL_ECHO)
async_session = async_sessionmaker(engine, expire_on_commit=False)

Base = declarative_base()


async def get_db():
    async with async_session() as session:
        yield session


async def init_models(bind=engine):
    # importing the models registers them on Base.metadata
    import splitledger.models.group  # noqa: F401
    import splitledger.models.group_member  # noqa: F401
    import splitledger.models.expense  # noqa: F401
    import splitledger.models.expense_payment  # noqa: F401
    import splitledger.models.expense_split  # noqa: F401
    import splitledger.models.settlement  # noqa: F401

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
