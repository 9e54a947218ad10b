"""whobreaks: find out what breaks before you touch a file."""

__version__ = "0.1.0"
