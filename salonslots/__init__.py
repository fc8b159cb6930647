"""
salonslots - appointment availability for a nail salon.
"""

__version__ = "0.1.0"
