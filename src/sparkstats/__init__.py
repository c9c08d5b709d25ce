"""sparkstats: Batch analytics for exported fighting-game battle results."""

from .schema import validate_report, validate_report_file
from .version import get_package_version

__version__ = get_package_version()
__author__ = "sparkstats contributors"
__description__ = "Batch analytics for exported fighting-game battle results"

__all__ = ["validate_report", "validate_report_file"]
