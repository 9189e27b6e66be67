"""Check host memory statistics and safely raise vm.min_free_kbytes."""

__version__ = "0.1.0"
