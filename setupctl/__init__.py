"""setupctl — server software installation recipes."""

__version__ = "0.1.0"
