"""AI-assisted pull-request workflow helpers built on git, forge CLIs and AI agents."""

__version__ = "0.3.0"

__all__ = ["__version__"]
