"""Core functionality for coloring page generation.

This package holds everything that is not HTTP:

- **config**: Configuration management using Pydantic Settings
- **identifiers**: Validated opaque job identifiers
- **results**: Typed step results, pipeline stages and the error hierarchy
- **file_store**: Flat-file storage keyed by job identifier
- **prompts**: Fixed prompt text for the AI service
- **ai_client**: Describe and generate calls with hard timeouts
- **image_fetch**: Streaming download of the generated image
- **pdf_renderer**: A4 page layout and PDF output
- **pipeline**: The sequential state machine tying the steps together

Architecture Overview
---------------------
The modules are layered leaf-first.  ``pipeline`` depends on every other
module; nothing depends on ``pipeline`` except the API layer.

Usage Example
-------------
    from coloringpage.core import ColoringAIClient, ColoringPipeline, FileStore, config

    store = FileStore(config.uploads_dir, config.processed_dir)
    pipeline = ColoringPipeline(store, ColoringAIClient(config), config)
"""

from coloringpage.core.ai_client import ColoringAIClient, ColoringService
from coloringpage.core.config import ColoringPageConfig, config
from coloringpage.core.file_store import FileStore
from coloringpage.core.pipeline import ColoringPipeline, PipelineOutcome, UploadedImage

__all__ = [
    "ColoringAIClient",
    "ColoringService",
    "ColoringPageConfig",
    "ColoringPipeline",
    "FileStore",
    "PipelineOutcome",
    "UploadedImage",
    "config",
]
