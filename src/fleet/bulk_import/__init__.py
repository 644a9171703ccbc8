"""Bulk Device Import Module.

This module provisions devices in bulk from CSV or Excel files:
- Map each row onto a device (name, type, label, description, gateway)
- Derive one set of credentials per row (LWM2M, X.509, MQTT or token)
- Find, create or upgrade the device profile named by the device type
- Create or update the device together with its credentials

Architecture: Clean Architecture with Hexagonal (Ports & Adapters)
"""
