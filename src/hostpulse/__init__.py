"""Host resource sampling and health scoring."""

__version__ = "0.1.0"
