"""seatorder: table-ordering backend for QR-seated restaurant sessions."""

__version__ = "0.1.0"
