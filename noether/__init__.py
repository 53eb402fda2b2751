"""Point cloud and mesh filter chains, and tool path sequencing."""

__version__ = "0.1.0"