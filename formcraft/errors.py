"""Exceptions raised by FormCraft outside the in-memory core."""


class FormCraftError(RuntimeError):
    """Base class for FormCraft failures."""
    pass


class StoredStateError(FormCraftError):
    """Raised when a stored form state cannot be decoded."""
    pass


class FormNotFoundError(FormCraftError):
    """Raised when a form cannot be found in the library."""
    pass


class ExportError(FormCraftError):
    """Raised when an export target cannot be written."""
    pass
