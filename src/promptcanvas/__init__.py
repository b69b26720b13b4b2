"""PromptCanvas - brand-styled image generation with a shared asset catalog."""

__version__ = "0.1.0"

from promptcanvas.core.config import PromptCanvasConfig, config

__all__ = [
    "PromptCanvasConfig",
    "config",
]
