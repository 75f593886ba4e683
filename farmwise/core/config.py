# farmwise/core/config.py

from typing import Optional
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    """Loads application settings from .env file."""
    gemini_api_key: Optional[str] = None
    google_api_key: Optional[str] = None
    model_name: str = "gemini-3-flash-preview"

    # Outstanding inference calls fail with TransportFailure after this long
    inference_timeout_seconds: float = 60.0

    # "file" keeps collections as JSON files under data_dir, "mongo" keeps them in MongoDB
    store_backend: str = "file"
    data_dir: str = ".farmwise"

    mongo_uri: Optional[str] = None
    mongo_user: Optional[str] = None
    mongo_password: Optional[str] = None
    mongo_host: str = "localhost"
    mongo_port: int = 27017
    mongo_db_name: str = "farmwise_db"

    @property
    def api_key(self) -> Optional[str]:
        return self.gemini_api_key or self.google_api_key

    @property
    def final_mongo_uri(self) -> str:
        """Constructs safe MongoDB URI from components (preferred) or returns the provided one."""
        if self.mongo_user and self.mongo_password:
            import urllib.parse
            user = urllib.parse.quote_plus(self.mongo_user)
            password = urllib.parse.quote_plus(self.mongo_password)
            return f"mongodb+srv://{user}:{password}@{self.mongo_host}/"

        if self.mongo_uri:
            return self.mongo_uri

        return f"mongodb://{self.mongo_host}:{self.mongo_port}/"

    class Config:
        env_file = ".env"
        extra = "ignore"

# Create a single, reusable instance of the settings
settings = Settings()
