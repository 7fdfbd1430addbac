"""Card control: signed cash-advance records backed by Firebase."""

__version__ = "0.1.0"
