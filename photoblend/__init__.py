"""Material preview compositor: blend a real material into a region of a photo."""

__version__ = "0.1.0"
