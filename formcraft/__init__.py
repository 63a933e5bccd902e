"""FormCraft - drag-and-drop form designer core."""

__version__ = "1.0.0"
