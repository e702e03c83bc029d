"""Read-only Google Drive access for AI assistants over the Model Context Protocol."""

from gdrive_mcp.__version__ import __version__

__all__ = ["__version__"]
