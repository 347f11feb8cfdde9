"""relready: release-readiness and risk scoring for engineering dashboards."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("relready")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"

from relready.core import PrepItem
from relready.prep_items import PrepItemStore

__all__ = ["PrepItem", "PrepItemStore", "__version__"]
