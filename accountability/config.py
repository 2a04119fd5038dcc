from typing import Optional

from pydantic import field_validator, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from .secrets_manager import SecretsManager

class Settings(BaseSettings):
    aws_region: str = "us-east-1"
    environment: str = "development"
    host: str = "localhost"
    db_username: str = "postgres"
    db_password: SecretStr = SecretStr("")
    database: str = "accountability"
    port: int = 5432
    # Full SQLAlchemy URL; takes precedence over the individual connection parts
    database_url: Optional[str] = None
    push_notification_url: SecretStr = SecretStr("http://localhost:3000/api/push-http")
    firebase_project_id: str = "habit-accountability"
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @field_validator("db_username", "db_password", "push_notification_url", mode="before")
    @classmethod
    def load_secrets(cls, v, info):
        if info.data.get("environment") == "production":
            try:
                secrets = SecretsManager(region_name=info.data.get("aws_region"))
                if info.field_name == "db_username":
                    v = secrets.get_db_credentials()['username']
                elif info.field_name == "db_password":
                    v = secrets.get_db_credentials()['password']
                elif info.field_name == "push_notification_url":
                    v = secrets.get_push_notification_url()
                return v
            except Exception:
                # If there's an error getting secrets, fall back to the env value
                return v
        return v

    @property
    def sqlalchemy_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        return (
            f"postgresql+psycopg://{self.db_username}:{self.db_password.get_secret_value()}"
            f"@{self.host}:{self.port}/{self.database}"
        )

settings = Settings()
