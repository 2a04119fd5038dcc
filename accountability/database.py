from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from accountability.config import settings
import logging

logger = logging.getLogger(__name__)

SQLALCHEMY_DATABASE_URL = settings.sqlalchemy_database_url

# Log the connection string (mask password for safety)
_password = settings.db_password.get_secret_value()
masked_url = SQLALCHEMY_DATABASE_URL.replace(_password, "*****") if _password else SQLALCHEMY_DATABASE_URL
logger.info(f"SQLAlchemy DB URL: {masked_url}")

engine = create_async_engine(
    SQLALCHEMY_DATABASE_URL
    )

# Objects stay readable after commit; services hand them back to callers
AsyncSessionLocal = async_sessionmaker(
    autocommit=False, autoflush=False, bind=engine, class_=AsyncSession, expire_on_commit=False
)

Base = declarative_base()
