"""lmsctl: Library Management System control CLI."""

__version__ = "0.3.0"
