from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from attendee_network.core.config import settings

# SQL echo only in development
engine = create_async_engine(
    str(settings.DATABASE_URL),
    echo=settings.is_dev_mode,
    pool_pre_ping=True,  # Verify connections before using
    pool_size=10,
    max_overflow=20,
    connect_args={"command_timeout": settings.STORE_TIMEOUT_SECONDS},
)
AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

async def get_db():
    async with AsyncSessionLocal() as session:
        yield session
