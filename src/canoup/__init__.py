"""
canoup - Cano installer and updater

Keeps a local clone of the Cano editor in sync with upstream and rebuilds
and installs it whenever the source changes.
"""

__version__ = "0.3.0"

# Re-export core models for convenience
from canoup.core.config.models import CanoupConfig
from canoup.core.sync.models import MergeClassification, SyncResult

__all__ = ["CanoupConfig", "MergeClassification", "SyncResult", "__version__"]
