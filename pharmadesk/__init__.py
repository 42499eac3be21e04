"""PharmaDesk: medicine inventory, suppliers, sales and reporting backend."""

__version__ = "0.1.0"
