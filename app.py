"""Application entry point for the SNS Icon Maker project."""

from __future__ import annotations

from typing import Optional

from config.settings import load_config
from modules.ui.layout import build_app
from modules.utils.logging import setup_logging


def main(config_path: Optional[str] = None) -> None:
    """Load configuration and launch the Gradio interface."""
    config = load_config(config_path)
    logger = setup_logging(config)
    if not config.api_key:
        logger.warning("GEMINI_API_KEY is not set; generation requests will fail until it is configured")

    app = build_app(config)
    app.queue()
    app.launch(share=False, inbrowser=False, allowed_paths=[str(config.download_dir)])


if __name__ == "__main__":
    main()
