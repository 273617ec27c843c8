"""Weekly recurring-slot scheduling and conflict engine."""

__version__ = "0.1.0"
