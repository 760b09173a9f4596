from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
import dotenv
import os
dotenv.load_dotenv()

# Falls back to a local SQLite file when DATABASE_URL is not set
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./marketplace.db")


def is_sqlite(url):
    return url.startswith("sqlite")


def is_memory_sqlite(url):
    return url in ("sqlite://", "sqlite:///:memory:")


def make_engine(url):
    if is_memory_sqlite(url):
        # One shared connection, otherwise every thread sees an empty database
        return create_engine(url, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    if is_sqlite(url):
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(url, pool_pre_ping=True)


engine = make_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
