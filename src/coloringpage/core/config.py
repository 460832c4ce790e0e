"""Configuration management for the Coloring Page Generator.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the COLORINGPAGE_
prefix, allowing easy customization without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (COLORINGPAGE_* prefix)
2. .env file in the project root
3. Default values defined in ColoringPageConfig

The OpenAI API key is the one exception to the prefix rule: it is read from
``COLORINGPAGE_OPENAI_API_KEY`` or, failing that, the conventional
``OPENAI_API_KEY`` variable that the OpenAI SDK itself uses.

Example .env file:
    OPENAI_API_KEY=sk-...
    COLORINGPAGE_SERVER_PORT=5001
    COLORINGPAGE_UPLOADS_DIR=uploads
    COLORINGPAGE_PROCESSED_DIR=processed
    COLORINGPAGE_DESCRIBE_TIMEOUT=30

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time.

Usage Example
-------------
    from coloringpage.core.config import config

    print(config.vision_model)
    print(config.processed_dir)

Directory Management
--------------------
The configuration automatically creates the two File Store directories on
initialization:
- uploads_dir: Original user uploads
- processed_dir: AI-generated outline images and rendered PDFs

Timeouts
--------
The two AI calls are bounded by hard ceilings (``describe_timeout`` and
``generate_timeout``).  Exceeding either fails the request; nothing is
retried.
"""

from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ColoringPageConfig(BaseSettings):
    """Main configuration for the Coloring Page Generator.

    Values are loaded from environment variables with the COLORINGPAGE_
    prefix, with fallback to defaults defined here.  Both File Store
    directories are created if they don't exist.

    Attributes
    ----------
    AI Service Settings:
        openai_api_key : str | None
            API key for the hosted AI service (``OPENAI_API_KEY`` accepted)
        openai_base_url : str | None
            Optional base URL override (proxies, compatible providers)
        vision_model : str
            Model used for the describe call
        vision_max_tokens : int
            Upper bound on the description length
        image_model : str
            Model used for the generate call
        image_size : str
            Square size requested from the generate call

    Timeouts (seconds):
        describe_timeout : float
            Hard ceiling on the describe call (30 s)
        generate_timeout : float
            Hard ceiling on the generate call (60 s)
        download_timeout : float
            Transport timeout for fetching the generated image

    Uploads:
        max_upload_bytes : int
            Largest accepted upload (10 MB)

    Paths:
        uploads_dir : Path
            Directory for original uploads
        processed_dir : Path
            Directory for processed images and PDFs
        artifact_max_age_hours : float | None
            When set, artifacts older than this are removed at startup

    Server Settings:
        server_host : str
            Bind address for uvicorn
        server_port : int
            Port for uvicorn
        cors_origins : list[str]
            Origins allowed by the CORS middleware
        log_level : str
            Root logging level configured by ``main()``

    Examples
    --------
        >>> custom_config = ColoringPageConfig(
        ...     uploads_dir="/tmp/uploads",
        ...     processed_dir="/tmp/processed",
        ...     describe_timeout=5,
        ... )
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="COLORINGPAGE_",
        case_sensitive=False,
        extra="ignore",
    )

    # AI service settings
    openai_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("COLORINGPAGE_OPENAI_API_KEY", "OPENAI_API_KEY", "openai_api_key"),
        description="API key for the hosted AI service",
    )
    openai_base_url: str | None = Field(
        default=None,
        description="Optional base URL override for the AI service",
    )
    vision_model: str = Field(
        default="gpt-4o",
        description="Vision-capable chat model used to describe the upload",
    )
    vision_max_tokens: int = Field(
        default=300,
        description="Maximum tokens in the generated description",
        ge=1,
        le=4096,
    )
    image_model: str = Field(
        default="dall-e-3",
        description="Image generation model used to draw the outline",
    )
    image_size: str = Field(
        default="1024x1024",
        pattern=r"^\d+x\d+$",
        description="Square image size requested from the generate call",
    )

    # Timeouts
    describe_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Hard ceiling in seconds for the describe call",
    )
    generate_timeout: float = Field(
        default=60.0,
        gt=0,
        description="Hard ceiling in seconds for the generate call",
    )
    download_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Transport timeout in seconds for the image download",
    )

    # Uploads
    max_upload_bytes: int = Field(
        default=10 * 1024 * 1024,
        ge=1,
        description="Largest accepted upload in bytes",
    )

    # Paths
    uploads_dir: Path = Field(
        default=Path("uploads"),
        description="Directory for original uploads",
    )
    processed_dir: Path = Field(
        default=Path("processed"),
        description="Directory for processed images and PDFs",
    )
    artifact_max_age_hours: float | None = Field(
        default=None,
        gt=0,
        description="Remove artifacts older than this many hours at startup (unset = keep forever)",
    )

    # Server settings
    server_host: str = Field(
        default="0.0.0.0",
        description="Server bind address",
    )
    server_port: int = Field(
        default=5001,
        description="Server port",
        ge=1024,
        le=65535,
    )
    cors_origins: list[str] = Field(
        default=["*"],
        description="Origins allowed to call the API from a browser",
    )
    log_level: str = Field(
        default="INFO",
        description="Root logging level",
    )

    def __init__(self, **kwargs):
        """Initialize configuration and create the File Store directories.

        Args:
            **kwargs: Configuration overrides (typically from environment variables)
        """
        super().__init__(**kwargs)

        self.uploads_dir.mkdir(parents=True, exist_ok=True)
        self.processed_dir.mkdir(parents=True, exist_ok=True)


# Global configuration instance
# Loads values from environment variables (COLORINGPAGE_* prefix) and .env file.
config = ColoringPageConfig()
