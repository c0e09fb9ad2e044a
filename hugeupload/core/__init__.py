"""Core building blocks of hugeupload."""
