"""notesync - Keep plain-text notes in sync across a folder, a browser and a server."""

__version__ = "0.1.0"
