"""
greenlight-installer - install or upgrade a standalone Greenlight v3 server
"""

__version__ = "0.1.0"

from .core import GreenlightInstaller
from .errors import InstallerError

__all__ = ["GreenlightInstaller", "InstallerError"]
