"""whalebuilder - build Debian packages inside an ephemeral container.

A drop-in replacement for running dpkg-buildpackage directly: the source
tree is mounted read-only into a podman/docker container, build
dependencies are installed there, and the produced packages are copied
back to the host.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
