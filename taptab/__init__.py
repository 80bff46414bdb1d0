"""
                        TapTab Menu Builder

Multi-tenant digital menu builder: owners edit categories, dishes,
pricing options and themes; diners read a published menu through a
QR code or short link.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
