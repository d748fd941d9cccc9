from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.orm import declarative_base
from dotenv import load_dotenv
load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str = "sqlite:///./learner-progress.db"
    # Day boundary used for streaks. UTC unless a tz database name is given.
    streak_timezone: str = "UTC"
    db_timeout_seconds: float = 5.0


settings = Settings()


def _connect_args(url: str, timeout: float) -> dict:
    if url.startswith("sqlite"):
        return {"check_same_thread": False, "timeout": timeout}
    if url.startswith("postgresql"):
        return {"connect_timeout": int(timeout)}
    return {}


engine = create_engine(
    settings.database_url,
    connect_args=_connect_args(settings.database_url, settings.db_timeout_seconds),
    pool_pre_ping=True,
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

def create_db():
    # tables live on the models module; import registers them on Base
    import progress_api.models.models  # noqa: F401
    Base.metadata.create_all(bind=engine)
    print("Database created")

