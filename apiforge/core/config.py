from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    app_name: str = "apiforge"
    api_host: str = "0.0.0.0"
    api_port: int = 8080

    database_url: str = "sqlite:///./apiforge.db"
    redis_url: str = "redis://localhost:6379/0"
    run_migrations_on_startup: bool = True

    # Pipeline pacing; zero keeps both pipelines purely cooperative
    generation_step_delay: float = 0.0
    deployment_step_delay: float = 0.1
    deployment_ticks_per_step: int = 5
    deployment_max_records: int = 1000

settings = Settings()
