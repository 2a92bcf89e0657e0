from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', extra='ignore')

    app_name: str = 'Training Planning'
    app_env: str = 'local'
    app_timezone: str = 'Europe/Paris'
    database_url: str = 'sqlite:///./planning.db'
    auth_secret: str = 'change-me'
    tenant_base_domain: str = ''
    dev_default_tenant_slug: str = 'default-tenant'
    morning_start: str = '09:00'
    morning_end: str = '12:30'
    afternoon_start: str = '13:30'
    afternoon_end: str = '17:00'
    batch_commit_mode: Literal['best_effort', 'atomic'] = 'best_effort'
    db_slow_query_ms: int = 100
    metrics_slow_ms: int = 200


settings = Settings()
