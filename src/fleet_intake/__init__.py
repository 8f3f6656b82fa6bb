"""Work-order document intake for multi-tenant fleet maintenance."""

__version__ = "0.1.0"
