"""Provisioning services — one module per installer component."""
