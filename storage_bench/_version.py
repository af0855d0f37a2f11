"""Version information for storage-bench."""

__version__ = "0.2.0.0"
__author__ = "storage-bench maintainers"
__email__ = "storage-bench@example.org"
