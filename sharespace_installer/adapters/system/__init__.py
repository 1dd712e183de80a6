"""System service manager adapters."""
