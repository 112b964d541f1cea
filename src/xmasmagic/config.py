from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional

ARK_URL = "https://ark.cn-beijing.volces.com/api/v3/images/generations"
DEFAULT_MODEL = "doubao-seedream-4-5-251128"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="XMASMAGIC__",
        extra="ignore",
        populate_by_name=True,
    )

    api_key: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("VOLC_ARK_API_KEY", "XMASMAGIC__API_KEY"),
        description="Volcengine Ark API key used when the caller supplies none.",
    )
    endpoint: str = Field(
        ARK_URL, description="Image generation endpoint of the remote service."
    )
    default_model: str = Field(
        DEFAULT_MODEL, description="Model used when a request does not name one."
    )
    output_dir: str = Field(
        "generated_images", description="Default directory to save generated images."
    )
    request_timeout: Optional[float] = Field(
        None, description="HTTP timeout in seconds. None waits indefinitely."
    )
    max_concurrency: Optional[int] = Field(
        None,
        ge=1,
        description="Upper bound on in-flight remote calls per batch. None is unbounded.",
    )
    host: str = Field("0.0.0.0", description="Bind address of the web server.")
    port: int = Field(5000, description="Port of the web server.")


settings = Settings()
