from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    project_name: str = "callback-tracker"
    port: int = Field(default=4000, gt=0)
    database_url: str = Field(min_length=1)
    log_level: str = "info"

    azure_ad_tenant_id: str = Field(min_length=1)
    azure_ad_api_audience: str = Field(min_length=1)
    azure_ad_client_id: str = Field(min_length=1)
    azure_ad_client_secret: str = Field(min_length=1)
    azure_ad_graph_scope: str = Field(default="https://graph.microsoft.com/.default", min_length=1)

    skip_auth: bool = False

    upstream_timeout_seconds: float = 10.0
    directory_cache_ttl_seconds: float = 300.0
    cors_origin_regex: str = ".*"


settings = Settings()
