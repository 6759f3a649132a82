"""sysdash - terminal dashboard for live host resource charts."""

__version__ = "0.1.0"
