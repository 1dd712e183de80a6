"""Core — configuration, models, engine, and provisioning services."""
