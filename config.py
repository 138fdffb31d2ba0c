from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "Cooperative Guarantor API"
    debug: bool = False
    log_level: str = "INFO"

    database_url: str = "sqlite+aiosqlite:///./cooperative.db"
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"

    # Base of the link emailed to guarantors: {app_url}/guarantor-approval/{token}
    app_url: str = "http://localhost:3000"

    resend_api_key: Optional[str] = None
    email_from: str = "AWSLMCSL Cooperative <noreply@awslmcsl.org>"
    email_api_url: str = "https://api.resend.com/emails"
    email_timeout_seconds: float = 15

    guarantor_token_ttl_days: int = 7

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def approval_link_base(self) -> str:
        return f"{self.app_url.rstrip('/')}/guarantor-approval"


settings = Settings()
