"""Media inspection."""

from mencoder_command.inspector.analyzer import MediaInspector

__all__ = ["MediaInspector"]
