"""Program configuration, device layout, network descriptors and container segments for NSP compute programs."""

__version__ = "0.1.0"