"""ShareSpace installer — provision the ShareSpace stack on a Linux host."""

__version__ = "0.1.0"
