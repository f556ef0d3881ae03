"""
gitplus - Git productivity commands
"""

__version__ = "0.1.0"
__license__ = "MIT"

# Import main CLI for convenience
from gitplus.cli import cli

__all__ = ["cli", "__version__"]
