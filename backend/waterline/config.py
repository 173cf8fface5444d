from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Database
    database_url: str = Field(default="sqlite:///./waterline.db")

    # Outage status page
    outage_source_url: str = Field(
        default="https://www.calgary.ca/water/customer-service/water-outages.html"
    )
    outage_block_delimiter: str = Field(default="Information |")
    outage_fetch_mode: str = Field(default="browser", pattern="^(browser|http)$")
    outage_fetch_timeout_s: float = Field(default=30.0)
    # Timestamps on the page are local to the utility
    outage_source_timezone: str = Field(default="America/Edmonton")

    # Scheduler interval (minutes)
    outage_scrape_interval: int = Field(default=30)
    scheduler_enabled: bool = Field(default=True)

    # Recency window applied to published "updated" timestamps
    outage_recency_hours: float = Field(default=24.0)
    outage_recency_inclusive: bool = Field(default=True)

    log_level: str = Field(default="INFO")

    # HTTP server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=5001)

    # CORS
    cors_origins: str = Field(default="http://localhost:3000")

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",")]


settings = Settings()
