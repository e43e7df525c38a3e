"""esvu — install and update prebuilt JavaScript engine binaries."""

__version__ = "0.1.0"
