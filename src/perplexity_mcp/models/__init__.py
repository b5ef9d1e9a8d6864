"""Data models shared by the validator, service and tool layers."""
