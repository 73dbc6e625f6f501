"""Single-user task board with board and calendar views over one JSON document."""

__version__ = "0.1.0"
