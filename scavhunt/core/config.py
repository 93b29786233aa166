from pydantic_settings import BaseSettings, SettingsConfigDict

PASSWORD_PLACEHOLDER = "<PASSWORD>"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    APP_ENV: str = "development"
    APP_NAME: str = "scavhunt"

    # The URL may carry a <PASSWORD> placeholder so the secret can live in its own variable.
    DATABASE_URL: str = "sqlite+pysqlite:///./scavhunt.db"
    DATABASE_PASSWORD: str = ""
    DB_CREATE_ALL: bool = True

    HOST: str = "127.0.0.1"
    PORT: int = 3005
    LOG_LEVEL: str = "INFO"

    DEFAULT_PAGE_SIZE: int = 100
    MAX_PAGE_SIZE: int = 1000

    @property
    def database_url(self) -> str:
        if PASSWORD_PLACEHOLDER not in self.DATABASE_URL:
            return self.DATABASE_URL
        return self.DATABASE_URL.replace(PASSWORD_PLACEHOLDER, self.DATABASE_PASSWORD)

    @property
    def is_development(self) -> bool:
        return self.APP_ENV.strip().lower() in {"development", "dev", "local"}


settings = Settings()
