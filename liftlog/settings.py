from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "sqlite:///./liftlog.db"
    api_base_url: str = "http://localhost:5002"  # where the client finds the store
    request_timeout: float = 30.0
    host: str = "0.0.0.0"
    port: int = 5002

    class Config:
        env_file = ".env"
        env_prefix = ""
        case_sensitive = False


@lru_cache
def get_settings() -> Settings:
    return Settings()
