"""envdeck - Provision Azure Deployment Environments from the command line.

envdeck creates, updates, and deletes dev center environments described by an
``envdeck.yaml`` project file, and reports deployment progress while the
remote operation runs.
"""

from envdeck.config.loader import ConfigLoader
from envdeck.lib.errors import ConfigError, DeploymentError, EnvDeckError

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "ConfigLoader",
    "ConfigError",
    "DeploymentError",
    "EnvDeckError",
]
