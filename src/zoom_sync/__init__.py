"""zoom-sync: display sync engine for the Zoom65 v3 screen module"""

__version__ = "0.1.0"
